"""Provider health record and circuit breaker state entities."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .provider import Provider


class HealthStatus(str, Enum):
    """Persisted provider status. ``DEGRADED`` marks a half-open circuit."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    DOWN = "down"


class CircuitState(str, Enum):
    """Externally observable circuit state."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class ProviderHealthRecord:
    """
    Circuit breaker bookkeeping for one (provider, region) partition.

    Counters belong to the current monitoring window starting at
    ``window_start_at``. ``avg_response_time_ms`` holds the last observed
    latency sample; it is overwritten on every call, not averaged.
    """

    provider: Provider
    region: str
    status: HealthStatus
    circuit_breaker_open: bool
    failed_calls: int
    successful_calls: int
    window_start_at: datetime
    updated_at: datetime
    avg_response_time_ms: int = 0
    last_success_at: datetime | None = None
    last_failure_at: datetime | None = None
    last_error: str | None = None
    created_at: datetime | None = None

    @property
    def is_half_open(self) -> bool:
        return self.circuit_breaker_open and self.status == HealthStatus.DEGRADED

    @property
    def total_calls(self) -> int:
        return self.failed_calls + self.successful_calls

    @property
    def failure_rate(self) -> float:
        if self.total_calls == 0:
            return 0.0
        return self.failed_calls / self.total_calls


@dataclass(frozen=True)
class CircuitBreakerState:
    """Diagnostic snapshot returned by ``CircuitBreakerService.get_state``."""

    provider: Provider
    region: str
    state: CircuitState
    failures: int = 0
    successes: int = 0
    avg_response_time_ms: int = 0
    last_failure_at: datetime | None = None
    last_success_at: datetime | None = None
    last_error: str | None = None
    next_attempt_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "provider": self.provider.value,
            "region": self.region,
            "state": self.state.value,
            "failures": self.failures,
            "successes": self.successes,
            "avg_response_time_ms": self.avg_response_time_ms,
            "last_failure_at": _iso(self.last_failure_at),
            "last_success_at": _iso(self.last_success_at),
            "last_error": self.last_error,
            "next_attempt_at": _iso(self.next_attempt_at),
        }


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
