"""Idempotency store implementations for webhook deduplication."""

from collections import OrderedDict
from typing import Optional

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError

from provider_gateway.core.clock import Clock, system_clock
from provider_gateway.domain.exceptions import IdempotencyStoreUnavailableException
from provider_gateway.domain.interfaces import IdempotencyStore

logger = structlog.get_logger(__name__)


class RedisIdempotencyStore(IdempotencyStore):
    """Redis-backed idempotency store shared by every gateway instance."""

    def __init__(self, client: aioredis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, redis_url: str) -> "RedisIdempotencyStore":
        """Create a store with its own connection pool."""
        client = aioredis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        logger.info("idempotency_store_configured", backend="redis")
        return cls(client)

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self._client.get(key)
        except RedisError as e:
            raise IdempotencyStoreUnavailableException(
                f"Idempotency store read failed: {e}"
            ) from e

        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except RedisError as e:
            raise IdempotencyStoreUnavailableException(
                f"Idempotency store write failed: {e}"
            ) from e

    async def close(self) -> None:
        await self._client.aclose()


class InMemoryIdempotencyStore(IdempotencyStore):
    """
    Process-local idempotency store.

    Entries expire after their TTL; once ``max_entries`` is reached the
    oldest entries are dropped. Only suitable for a single instance.
    """

    def __init__(self, max_entries: int = 10_000, clock: Clock = system_clock):
        self._max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, tuple[str, float]]" = OrderedDict()

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if self._clock.monotonic() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = (value, self._clock.monotonic() + ttl_seconds)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    async def close(self) -> None:
        self._entries.clear()
