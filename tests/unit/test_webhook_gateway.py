"""
Unit tests for the webhook gateway.

These tests verify:
1. Invalid signatures never reach business logic
2. Processed deliveries are skipped; failed ones are not
3. Business-logic failures are still acknowledged
4. Idempotency store outages degrade to processing every delivery
5. Idempotency key derivation and store adapters
"""

import hashlib
import hmac
import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from provider_gateway.domain.entities import IdempotencyMarker, WebhookResult
from provider_gateway.domain.exceptions import IdempotencyStoreUnavailableException
from provider_gateway.infrastructure.cache import (
    InMemoryIdempotencyStore,
    RedisIdempotencyStore,
)
from provider_gateway.service.webhooks import (
    WebhookOptions,
    create_webhook_response,
    process_webhook,
    webhook_idempotency_key,
)
from tests.doubles import BrokenIdempotencyStore, FrozenClock

SECRET = "plaid_webhook_secret"
PAYLOAD = json.dumps({"webhook_id": "wh_001", "webhook_code": "SYNC_UPDATES_AVAILABLE"}).encode()


def sign(payload: bytes) -> str:
    return hmac.new(SECRET.encode(), payload, hashlib.sha256).hexdigest()


@pytest.fixture
def store() -> InMemoryIdempotencyStore:
    return InMemoryIdempotencyStore()


@pytest.fixture
def options(store) -> WebhookOptions:
    return WebhookOptions(provider="plaid", secret=SECRET, idempotency_store=store)


# =============================================================================
# process_webhook
# =============================================================================

class TestProcessWebhook:
    """Tests for the processing pipeline."""

    @pytest.mark.asyncio
    async def test_invalid_signature_never_runs_business_logic(self, options):
        business_logic = AsyncMock()

        result = await process_webhook(PAYLOAD, "deadbeef", options, business_logic)

        assert result == WebhookResult(
            success=False, processed=False, idempotent=False, error="Invalid signature"
        )
        business_logic.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_signature_rejected(self, options):
        business_logic = AsyncMock()

        result = await process_webhook(PAYLOAD, None, options, business_logic)

        assert result.success is False
        business_logic.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_secret_rejects_everything(self, store):
        business_logic = AsyncMock()
        options = WebhookOptions(provider="plaid", secret="", idempotency_store=store)

        result = await process_webhook(PAYLOAD, sign(PAYLOAD), options, business_logic)

        assert result.success is False
        business_logic.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_valid_delivery_processed_and_marked(self, options, store):
        business_logic = AsyncMock()

        result = await process_webhook(PAYLOAD, sign(PAYLOAD), options, business_logic)

        assert result == WebhookResult(success=True, processed=True, idempotent=False)
        business_logic.assert_awaited_once()
        key = webhook_idempotency_key("plaid", PAYLOAD)
        assert await store.get(key) == IdempotencyMarker.PROCESSED

    @pytest.mark.asyncio
    async def test_redelivery_is_skipped(self, options):
        business_logic = AsyncMock()

        await process_webhook(PAYLOAD, sign(PAYLOAD), options, business_logic)
        result = await process_webhook(PAYLOAD, sign(PAYLOAD), options, business_logic)

        assert result == WebhookResult(success=True, processed=False, idempotent=True)
        assert business_logic.await_count == 1

    @pytest.mark.asyncio
    async def test_business_failure_is_acknowledged(self, options, store):
        business_logic = AsyncMock(side_effect=RuntimeError("ledger write failed"))

        result = await process_webhook(PAYLOAD, sign(PAYLOAD), options, business_logic)

        assert result.success is True
        assert result.processed is False
        assert result.idempotent is False
        assert result.error == "ledger write failed"
        key = webhook_idempotency_key("plaid", PAYLOAD)
        assert await store.get(key) == IdempotencyMarker.FAILED

    @pytest.mark.asyncio
    async def test_failed_delivery_is_retried_on_redelivery(self, options):
        business_logic = AsyncMock(side_effect=[RuntimeError("transient"), None])

        first = await process_webhook(PAYLOAD, sign(PAYLOAD), options, business_logic)
        second = await process_webhook(PAYLOAD, sign(PAYLOAD), options, business_logic)

        assert first.processed is False
        assert second.processed is True
        assert business_logic.await_count == 2

    @pytest.mark.asyncio
    async def test_without_store_every_delivery_is_processed(self):
        business_logic = AsyncMock()
        options = WebhookOptions(provider="plaid", secret=SECRET)

        await process_webhook(PAYLOAD, sign(PAYLOAD), options, business_logic)
        await process_webhook(PAYLOAD, sign(PAYLOAD), options, business_logic)

        assert business_logic.await_count == 2

    @pytest.mark.asyncio
    async def test_store_outage_degrades_to_processing(self):
        business_logic = AsyncMock()
        broken = BrokenIdempotencyStore()
        options = WebhookOptions(provider="plaid", secret=SECRET, idempotency_store=broken)

        result = await process_webhook(PAYLOAD, sign(PAYLOAD), options, business_logic)

        assert result == WebhookResult(success=True, processed=True, idempotent=False)
        assert broken.reads == 1
        assert broken.writes == 1

    @pytest.mark.asyncio
    async def test_ttls_passed_to_store(self):
        store = AsyncMock()
        store.get.return_value = None
        options = WebhookOptions(
            provider="plaid",
            secret=SECRET,
            idempotency_store=store,
            idempotency_ttl_seconds=100,
            failed_ttl_seconds=10,
        )

        await process_webhook(PAYLOAD, sign(PAYLOAD), options, AsyncMock())
        await process_webhook(
            PAYLOAD, sign(PAYLOAD), options, AsyncMock(side_effect=ValueError("x"))
        )

        key = webhook_idempotency_key("plaid", PAYLOAD)
        store.set.assert_any_await(key, IdempotencyMarker.PROCESSED, 100)
        store.set.assert_any_await(key, IdempotencyMarker.FAILED, 10)


# =============================================================================
# create_webhook_response
# =============================================================================

class TestCreateWebhookResponse:
    """Tests for the acknowledgement mapping."""

    @pytest.mark.parametrize(
        "result,message",
        [
            (WebhookResult(True, True, False), "Webhook processed successfully"),
            (WebhookResult(True, False, True), "Webhook already processed"),
            (WebhookResult(True, False, False, "boom"), "Webhook received"),
        ],
    )
    def test_verified_deliveries_always_acknowledged(self, result, message):
        ack = create_webhook_response(result)

        assert ack.status_code == 200
        assert ack.received is True
        assert ack.message == message

    def test_failed_verification(self):
        ack = create_webhook_response(WebhookResult(False, False, False, "Invalid signature"))

        assert ack.status_code == 401
        assert ack.to_dict() == {"received": False, "message": "Webhook verification failed"}


# =============================================================================
# Idempotency keys and stores
# =============================================================================

class TestIdempotencyKey:
    """Tests for delivery identity derivation."""

    def test_key_format(self):
        key = webhook_idempotency_key("plaid", PAYLOAD)

        prefix, _, digest = key.rpartition(":")
        assert prefix == "webhook:idempotency:plaid"
        assert len(digest) == 16
        int(digest, 16)

    def test_event_id_survives_reserialisation(self):
        compact = b'{"event_id":"evt_9","amount":1}'
        spaced = b'{"amount": 1, "event_id": "evt_9"}'

        assert webhook_idempotency_key("belvo", compact) == webhook_idempotency_key("belvo", spaced)

    def test_raw_bytes_hashed_without_event_id(self):
        first = webhook_idempotency_key("bitso", b'{"amount": 1}')
        second = webhook_idempotency_key("bitso", b'{"amount": 2}')

        assert first != second

    def test_non_json_payload(self):
        assert webhook_idempotency_key("manual", b"\x00\xffnot json").startswith(
            "webhook:idempotency:manual:"
        )

    def test_providers_do_not_share_keys(self):
        assert webhook_idempotency_key("plaid", PAYLOAD) != webhook_idempotency_key("belvo", PAYLOAD)


class TestInMemoryIdempotencyStore:
    """Tests for the process-local store."""

    @pytest.mark.asyncio
    async def test_entries_expire(self):
        clock = FrozenClock()
        store = InMemoryIdempotencyStore(clock=clock)
        await store.set("k", "processed", ttl_seconds=60)

        clock.advance(seconds=59)
        assert await store.get("k") == "processed"

        clock.advance(seconds=1)
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_bounded(self):
        store = InMemoryIdempotencyStore(max_entries=2)
        for key in ("a", "b", "c"):
            await store.set(key, "processed", ttl_seconds=60)

        assert await store.get("a") is None
        assert await store.get("c") == "processed"


class TestRedisIdempotencyStore:
    """Tests for the Redis adapter."""

    @pytest.mark.asyncio
    async def test_set_uses_expiry(self):
        client = AsyncMock()
        store = RedisIdempotencyStore(client)

        await store.set("k", "processed", 86_400)

        client.set.assert_awaited_once_with("k", "processed", ex=86_400)

    @pytest.mark.asyncio
    async def test_get_decodes_bytes(self):
        client = AsyncMock()
        client.get.return_value = b"processed"

        assert await RedisIdempotencyStore(client).get("k") == "processed"

    @pytest.mark.asyncio
    async def test_redis_errors_translated(self):
        client = AsyncMock()
        client.get.side_effect = RedisConnectionError("refused")
        client.set.side_effect = RedisConnectionError("refused")
        store = RedisIdempotencyStore(client)

        with pytest.raises(IdempotencyStoreUnavailableException):
            await store.get("k")
        with pytest.raises(IdempotencyStoreUnavailableException):
            await store.set("k", "processed", 10)
