"""
Circuit breaker decision rules.

Pure functions over a health record and the current time; the service layer
owns all reads and writes.
"""

from datetime import datetime, timedelta

from provider_gateway.domain.entities import CircuitState, HealthStatus, ProviderHealthRecord

from .settings import CircuitBreakerSettings, circuit_breaker_settings


def _elapsed_ms(since: datetime, now: datetime) -> float:
    return (now - since).total_seconds() * 1000


def window_expired(
    record: ProviderHealthRecord,
    now: datetime,
    settings: CircuitBreakerSettings = circuit_breaker_settings,
) -> bool:
    """True when the counting window is older than the monitoring window."""
    return _elapsed_ms(record.window_start_at, now) > settings.monitoring_window_ms


def open_timeout_elapsed(
    record: ProviderHealthRecord,
    now: datetime,
    settings: CircuitBreakerSettings = circuit_breaker_settings,
) -> bool:
    """True once an open circuit has waited long enough to be probed."""
    return _elapsed_ms(record.updated_at, now) >= settings.open_timeout_ms


def should_trip(
    failed_calls: int,
    successful_calls: int,
    settings: CircuitBreakerSettings = circuit_breaker_settings,
) -> bool:
    """
    Decide whether the circuit should open.

    Both conditions must hold: the failure count reached the threshold, and
    the failure rate strictly exceeds the configured rate (5 failures out of
    10 calls is exactly 50% and does not trip with the defaults).

    Args:
        failed_calls: Failures in the current window, including this one
        successful_calls: Successes in the current window
        settings: Circuit breaker settings (uses defaults if not provided)

    Returns:
        True if the circuit should open
    """
    if failed_calls < settings.failure_threshold:
        return False
    total = failed_calls + successful_calls
    return (failed_calls / total) > settings.failure_rate_threshold


def derive_state(
    record: ProviderHealthRecord | None,
    now: datetime,
    settings: CircuitBreakerSettings = circuit_breaker_settings,
) -> CircuitState:
    """
    Observable state of a partition.

    Applies the open-timeout check itself, so an open circuit whose timeout
    has elapsed reads as half-open even before anyone probed it.
    """
    if record is None or not record.circuit_breaker_open:
        return CircuitState.CLOSED
    if record.status == HealthStatus.DEGRADED or open_timeout_elapsed(record, now, settings):
        return CircuitState.HALF_OPEN
    return CircuitState.OPEN


def next_attempt_at(
    record: ProviderHealthRecord,
    settings: CircuitBreakerSettings = circuit_breaker_settings,
) -> datetime:
    """When an open circuit will next let a probe through."""
    return record.updated_at + timedelta(milliseconds=settings.open_timeout_ms)
