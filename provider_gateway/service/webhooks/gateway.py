"""
Inbound webhook gateway.

    result = await process_webhook(
        raw_body,
        request.headers.get("X-Webhook-Signature"),
        WebhookOptions(provider="plaid", secret=secret, idempotency_store=store),
        lambda: handler.handle(raw_body),
    )
    ack = create_webhook_response(result)

Once the signature verifies, the delivery is always acknowledged with a 200,
including when the business logic fails: the provider must not retry-storm
an endpoint whose side effects may have partially applied. Failures are
surfaced through logs and the ``provider_gateway_webhook_total`` metric.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import structlog

from provider_gateway.core.config import settings
from provider_gateway.core.metrics import record_webhook, track_webhook_latency
from provider_gateway.domain.entities import (
    IdempotencyMarker,
    WebhookAcknowledgement,
    WebhookResult,
)
from provider_gateway.domain.exceptions import IdempotencyStoreUnavailableException
from provider_gateway.domain.interfaces import IdempotencyStore

from .idempotency import webhook_idempotency_key
from .signature import SignatureVerifier, verify_hex_signature

BusinessLogic = Callable[[], Awaitable[Any]]

_default_logger = structlog.get_logger(__name__)


@dataclass
class WebhookOptions:
    """Per-provider settings for ``process_webhook``."""

    provider: str
    secret: str
    idempotency_store: Optional[IdempotencyStore] = None
    idempotency_ttl_seconds: int = settings.webhook_idempotency_ttl_seconds
    failed_ttl_seconds: int = settings.webhook_failed_ttl_seconds
    verifier: SignatureVerifier = verify_hex_signature
    logger: Any = None


async def _already_processed(
    store: IdempotencyStore,
    key: str,
    log: Any,
) -> bool:
    try:
        return await store.get(key) == IdempotencyMarker.PROCESSED
    except IdempotencyStoreUnavailableException as e:
        # Process anyway: a duplicate side effect beats a dropped delivery
        log.warning("webhook_idempotency_check_failed", error=e.message)
        return False


async def _mark(
    store: IdempotencyStore,
    key: str,
    marker: str,
    ttl_seconds: int,
    log: Any,
) -> None:
    try:
        await store.set(key, marker, ttl_seconds)
    except IdempotencyStoreUnavailableException as e:
        log.warning("webhook_idempotency_mark_failed", marker=marker, error=e.message)


async def process_webhook(
    raw_payload: bytes,
    signature: Optional[str],
    options: WebhookOptions,
    business_logic: BusinessLogic,
) -> WebhookResult:
    """
    Authenticate, de-duplicate and process one webhook delivery.

    Args:
        raw_payload: Exact request body bytes
        signature: Signature header value (may be None)
        options: Provider, secret and optional idempotency store
        business_logic: Zero-argument coroutine function applying the effects

    Returns:
        WebhookResult; ``success`` is False only for a failed signature check
    """
    provider = options.provider
    log = (options.logger or _default_logger).bind(provider=provider)

    with track_webhook_latency(provider):
        if not options.verifier(raw_payload, signature or "", options.secret or ""):
            log.warning(
                "webhook_signature_invalid",
                payload_bytes=len(raw_payload),
                signature_present=bool(signature),
            )
            record_webhook(provider, "invalid_signature")
            return WebhookResult(
                success=False,
                processed=False,
                idempotent=False,
                error="Invalid signature",
            )

        store = options.idempotency_store
        key = webhook_idempotency_key(provider, raw_payload)

        if store is not None and await _already_processed(store, key, log):
            log.info("webhook_duplicate_skipped", idempotency_key=key)
            record_webhook(provider, "duplicate")
            return WebhookResult(success=True, processed=False, idempotent=True)

        try:
            await business_logic()
        except Exception as e:
            log.exception(
                "webhook_processing_failed",
                idempotency_key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            record_webhook(provider, "failed")
            if store is not None:
                # Diagnostic only; a failed marker does not suppress redelivery
                await _mark(store, key, IdempotencyMarker.FAILED, options.failed_ttl_seconds, log)
            return WebhookResult(
                success=True,
                processed=False,
                idempotent=False,
                error=str(e) or type(e).__name__,
            )

        if store is not None:
            await _mark(
                store,
                key,
                IdempotencyMarker.PROCESSED,
                options.idempotency_ttl_seconds,
                log,
            )

        log.info("webhook_processed", idempotency_key=key)
        record_webhook(provider, "processed")
        return WebhookResult(success=True, processed=True, idempotent=False)


def create_webhook_response(result: WebhookResult) -> WebhookAcknowledgement:
    """Map a processing result to the acknowledgement sent to the provider."""
    if not result.success:
        return WebhookAcknowledgement(
            status_code=401,
            received=False,
            message="Webhook verification failed",
        )
    if result.idempotent:
        message = "Webhook already processed"
    elif result.processed:
        message = "Webhook processed successfully"
    else:
        message = "Webhook received"
    return WebhookAcknowledgement(status_code=200, received=True, message=message)
