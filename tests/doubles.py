"""Test doubles shared by unit and integration tests."""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from provider_gateway.core.clock import Clock
from provider_gateway.domain.entities import Provider, ProviderHealthRecord
from provider_gateway.domain.exceptions import (
    HealthStoreUnavailableException,
    IdempotencyStoreUnavailableException,
)
from provider_gateway.domain.interfaces import (
    IdempotencyStore,
    ProviderHealthRepository,
    WebhookHandler,
)

EPOCH = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)

WEBHOOK_SECRETS = {
    "plaid": "plaid_secret",
    "belvo": "belvo_secret",
    "bitso": "bitso_secret",
    "stripe": "stripe_secret",
}


class FrozenClock(Clock):
    """Clock whose wall and monotonic readings move only when advanced."""

    def __init__(self, start: datetime = EPOCH):
        self._now = start
        self._monotonic = 0.0

    def now(self) -> datetime:
        return self._now

    def monotonic(self) -> float:
        return self._monotonic

    def advance(self, ms: float = 0, seconds: float = 0) -> None:
        delta = timedelta(milliseconds=ms, seconds=seconds)
        self._now += delta
        self._monotonic += delta.total_seconds()


class FlakyHealthRepository(ProviderHealthRepository):
    """Delegates to a real repository, or fails like an unreachable store."""

    def __init__(self, inner: ProviderHealthRepository):
        self.inner = inner
        self.down = False
        self.calls = 0

    def _check(self) -> None:
        self.calls += 1
        if self.down:
            raise HealthStoreUnavailableException("connection refused")

    async def find(self, provider: Provider, region: str) -> Optional[ProviderHealthRecord]:
        self._check()
        return await self.inner.find(provider, region)

    async def get_or_create(self, provider, region, now):
        self._check()
        return await self.inner.get_or_create(provider, region, now)

    async def increment(self, provider, region, now, **kwargs: Any):
        self._check()
        return await self.inner.increment(provider, region, now, **kwargs)

    async def upsert(self, provider, region, now, **changes: Any):
        self._check()
        return await self.inner.upsert(provider, region, now, **changes)

    async def reset(self, provider, region, now):
        self._check()
        return await self.inner.reset(provider, region, now)


class BrokenIdempotencyStore(IdempotencyStore):
    """Store that is always unreachable."""

    def __init__(self):
        self.reads = 0
        self.writes = 0

    async def get(self, key: str) -> Optional[str]:
        self.reads += 1
        raise IdempotencyStoreUnavailableException("redis down")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.writes += 1
        raise IdempotencyStoreUnavailableException("redis down")


class RecordingWebhookHandler(WebhookHandler):
    """Handler that records payloads and can be told to fail."""

    def __init__(self, provider: Provider, error: Exception | None = None):
        self.provider = provider
        self.error = error
        self.payloads: list[bytes] = []

    async def handle(self, raw_payload: bytes) -> None:
        self.payloads.append(raw_payload)
        if self.error is not None:
            raise self.error
