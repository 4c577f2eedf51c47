"""
Webhook Gateway

Signature verification, delivery de-duplication and acknowledgement of
inbound provider webhooks.
"""

from .gateway import WebhookOptions, create_webhook_response, process_webhook
from .idempotency import webhook_idempotency_key
from .signature import (
    WEBHOOK_SIGNATURE_VERIFIERS,
    compute_signature,
    make_stripe_verifier,
    verifier_for,
    verify_signature,
)

__all__ = [
    "WebhookOptions",
    "create_webhook_response",
    "process_webhook",
    "webhook_idempotency_key",
    "WEBHOOK_SIGNATURE_VERIFIERS",
    "compute_signature",
    "make_stripe_verifier",
    "verifier_for",
    "verify_signature",
]
