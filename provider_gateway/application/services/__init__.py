"""Application services (use cases)."""

from .circuit_breaker_service import CircuitBreakerService
from .provider_call_service import ProviderCallService
from .webhook_service import WebhookHandlerRegistry, WebhookService

__all__ = [
    "CircuitBreakerService",
    "ProviderCallService",
    "WebhookHandlerRegistry",
    "WebhookService",
]
