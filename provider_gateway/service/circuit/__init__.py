"""
Circuit Breaker Rules

State machine (stored as ``circuit_breaker_open`` + ``status``):

    CLOSED    --[failures >= threshold AND rate > 50%]--> OPEN
    OPEN      --[open timeout elapsed]------------------> HALF_OPEN
    HALF_OPEN --[success_threshold successes]-----------> CLOSED
    HALF_OPEN --[any failure]---------------------------> OPEN
"""

from .policy import (
    derive_state,
    next_attempt_at,
    open_timeout_elapsed,
    should_trip,
    window_expired,
)
from .settings import (
    CircuitBreakerSettings,
    circuit_breaker_settings,
    get_circuit_breaker_settings,
)

__all__ = [
    "derive_state",
    "next_attempt_at",
    "open_timeout_elapsed",
    "should_trip",
    "window_expired",
    "CircuitBreakerSettings",
    "circuit_breaker_settings",
    "get_circuit_breaker_settings",
]
