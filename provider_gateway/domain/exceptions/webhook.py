"""Webhook-related domain exceptions."""

from .base import DomainException


class InvalidWebhookSignatureException(DomainException):
    """Raised at the transport boundary when a webhook signature is invalid."""

    def __init__(self, provider: str):
        super().__init__(
            message=f"Invalid webhook signature for {provider}",
            code="INVALID_WEBHOOK_SIGNATURE",
        )
        self.provider = provider


class WebhookNotConfiguredException(DomainException):
    """Raised when a webhook arrives for a provider without a shared secret."""

    def __init__(self, provider: str):
        super().__init__(
            message=f"Webhooks are not configured for {provider}",
            code="WEBHOOK_NOT_CONFIGURED",
        )
        self.provider = provider


class IdempotencyStoreUnavailableException(DomainException):
    """Raised when the webhook idempotency store cannot be reached."""

    def __init__(self, message: str = "Idempotency store unavailable"):
        super().__init__(
            message=message,
            code="IDEMPOTENCY_STORE_UNAVAILABLE",
        )
