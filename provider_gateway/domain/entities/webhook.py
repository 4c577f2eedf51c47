"""Inbound webhook processing entities."""

from dataclasses import dataclass


class IdempotencyMarker:
    """Values stored against a webhook idempotency key."""

    PROCESSED = "processed"
    FAILED = "failed"


@dataclass(frozen=True)
class WebhookResult:
    """
    Outcome of ``process_webhook``.

    ``success`` is False only when the signature failed verification. A
    business-logic failure still reports ``success=True`` with
    ``processed=False`` and the error message, so the delivery is acknowledged.
    """

    success: bool
    processed: bool
    idempotent: bool
    error: str | None = None

    @property
    def signature_valid(self) -> bool:
        return self.success


@dataclass(frozen=True)
class WebhookAcknowledgement:
    """Transport-level response for a webhook delivery."""

    status_code: int
    received: bool
    message: str

    def to_dict(self) -> dict:
        return {"received": self.received, "message": self.message}
