"""Process-local and Redis-backed stores."""

from .breaker_memory import BreakerMemory
from .idempotency_store import InMemoryIdempotencyStore, RedisIdempotencyStore

__all__ = [
    "BreakerMemory",
    "InMemoryIdempotencyStore",
    "RedisIdempotencyStore",
]
