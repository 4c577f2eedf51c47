"""Pydantic schemas for circuit breaker diagnostics."""

from datetime import datetime

from pydantic import BaseModel, Field

from provider_gateway.domain.entities import CircuitBreakerState, CircuitState, Provider


class CircuitStateSchema(BaseModel):
    """Observable circuit state of one (provider, region) partition."""

    provider: Provider
    region: str = Field(..., examples=["US"])
    state: CircuitState
    failures: int = Field(..., ge=0, description="Failed calls in the current window")
    successes: int = Field(..., ge=0, description="Successful calls in the current window")
    avg_response_time_ms: int = Field(
        0,
        description="Latency of the most recent call",
    )
    last_failure_at: datetime | None = None
    last_success_at: datetime | None = None
    last_error: str | None = None
    next_attempt_at: datetime | None = Field(
        None,
        description="When an open circuit will admit a probe",
    )

    @classmethod
    def from_state(cls, state: CircuitBreakerState) -> "CircuitStateSchema":
        return cls(
            provider=state.provider,
            region=state.region,
            state=state.state,
            failures=state.failures,
            successes=state.successes,
            avg_response_time_ms=state.avg_response_time_ms,
            last_failure_at=state.last_failure_at,
            last_success_at=state.last_success_at,
            last_error=state.last_error,
            next_attempt_at=state.next_attempt_at,
        )
