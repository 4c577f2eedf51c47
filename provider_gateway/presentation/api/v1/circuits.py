"""Circuit breaker diagnostic and administrative endpoints."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from provider_gateway.application.services import CircuitBreakerService
from provider_gateway.core.dependencies import get_circuit_breaker
from provider_gateway.domain.entities import Provider
from provider_gateway.presentation.schemas import CircuitStateSchema, ErrorResponseSchema

circuit_router = APIRouter(
    prefix="/providers/{provider}/circuit",
    responses={
        503: {"model": ErrorResponseSchema, "description": "Health store unavailable"},
    },
)

RegionQuery = Annotated[
    Optional[str],
    Query(min_length=1, max_length=16, description="Region partition (defaults to US)"),
]


@circuit_router.get(
    "",
    response_model=CircuitStateSchema,
    summary="Get Circuit State",
    description="Returns the circuit state and window counters for a provider and region.",
)
async def get_circuit_state(
    provider: Provider,
    circuit_breaker: Annotated[CircuitBreakerService, Depends(get_circuit_breaker)],
    region: RegionQuery = None,
) -> CircuitStateSchema:
    state = await circuit_breaker.get_state(provider, region)
    return CircuitStateSchema.from_state(state)


@circuit_router.post(
    "/reset",
    response_model=CircuitStateSchema,
    summary="Reset Circuit",
    description="Forces the circuit closed and zeroes its counters.",
)
async def reset_circuit(
    provider: Provider,
    circuit_breaker: Annotated[CircuitBreakerService, Depends(get_circuit_breaker)],
    region: RegionQuery = None,
) -> CircuitStateSchema:
    await circuit_breaker.reset(provider, region)
    state = await circuit_breaker.get_state(provider, region)
    return CircuitStateSchema.from_state(state)
