"""Domain Entities - Core business objects."""

from .provider import DEFAULT_REGION, Provider, circuit_key
from .provider_health import (
    CircuitBreakerState,
    CircuitState,
    HealthStatus,
    ProviderHealthRecord,
)
from .webhook import IdempotencyMarker, WebhookAcknowledgement, WebhookResult

__all__ = [
    "DEFAULT_REGION",
    "Provider",
    "circuit_key",
    "CircuitBreakerState",
    "CircuitState",
    "HealthStatus",
    "ProviderHealthRecord",
    "IdempotencyMarker",
    "WebhookAcknowledgement",
    "WebhookResult",
]
