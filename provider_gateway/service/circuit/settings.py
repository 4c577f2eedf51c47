"""
Circuit Breaker Settings.

Environment variables use the CIRCUIT_BREAKER_ prefix:
    CIRCUIT_BREAKER_FAILURE_THRESHOLD=5
    CIRCUIT_BREAKER_OPEN_TIMEOUT_MS=60000
    CIRCUIT_BREAKER_DEFAULT_REGION=US

Usage:
    from provider_gateway.service.circuit.settings import circuit_breaker_settings

    # Or create custom settings for testing
    custom = CircuitBreakerSettings(failure_threshold=3)
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CircuitBreakerSettings(BaseSettings):
    """
    Thresholds and timings of the per-(provider, region) circuit breaker.

    All durations are in milliseconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="CIRCUIT_BREAKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Trip Conditions ===
    failure_threshold: int = Field(
        default=5,
        ge=1,
        description="Failures within the window required before the circuit may open",
    )
    failure_rate_threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Failure rate that must be exceeded (strictly) to open the circuit",
    )

    # === Recovery ===
    success_threshold: int = Field(
        default=2,
        ge=1,
        description="Consecutive half-open successes required to close the circuit",
    )
    open_timeout_ms: int = Field(
        default=60_000,
        gt=0,
        description="Time an open circuit rejects calls before probing",
    )

    # === Window ===
    monitoring_window_ms: int = Field(
        default=300_000,
        gt=0,
        description="Rolling window over which failures and successes are counted",
    )

    # === Partitioning / Fallback ===
    default_region: str = Field(
        default="US",
        min_length=1,
        description="Region used when a caller does not specify one",
    )
    fallback_cache_size: int = Field(
        default=1_024,
        ge=1,
        description="Maximum partitions kept in the in-memory fallback map",
    )


@lru_cache
def get_circuit_breaker_settings() -> CircuitBreakerSettings:
    """Get cached circuit breaker settings instance."""
    return CircuitBreakerSettings()


circuit_breaker_settings = get_circuit_breaker_settings()
