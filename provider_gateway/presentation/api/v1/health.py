"""Liveness endpoint, with a reachability probe of the health store."""

from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel

from provider_gateway import __version__
from provider_gateway.infrastructure.database import db_manager

health_router = APIRouter()


class HealthResponse(BaseModel):
    status: Literal["healthy", "degraded"] = "healthy"
    version: str
    health_store: Literal["ok", "unavailable", "not_initialized"]


@health_router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description=(
        "Returns the liveness status of the service. An unreachable health store "
        "reports `degraded`: circuit checks keep answering from memory."
    ),
)
async def health_check() -> HealthResponse:
    if not db_manager.is_initialized:
        store = "not_initialized"
    elif await db_manager.ping():
        store = "ok"
    else:
        store = "unavailable"

    return HealthResponse(
        status="degraded" if store == "unavailable" else "healthy",
        version=__version__,
        health_store=store,
    )
