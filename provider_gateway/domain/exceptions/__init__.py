"""Domain Exceptions - Resilience layer errors."""

from .base import DomainException
from .provider import (
    HealthStoreUnavailableException,
    ProviderUnavailableException,
)
from .timeout import OperationTimeoutException, is_timeout_error
from .webhook import (
    IdempotencyStoreUnavailableException,
    InvalidWebhookSignatureException,
    WebhookNotConfiguredException,
)

__all__ = [
    "DomainException",
    "HealthStoreUnavailableException",
    "ProviderUnavailableException",
    "OperationTimeoutException",
    "is_timeout_error",
    "IdempotencyStoreUnavailableException",
    "InvalidWebhookSignatureException",
    "WebhookNotConfiguredException",
]
