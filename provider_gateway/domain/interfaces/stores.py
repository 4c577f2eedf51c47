"""Key-value store interfaces."""

from abc import ABC, abstractmethod
from typing import Optional


class IdempotencyStore(ABC):
    """
    Abstract store for webhook delivery markers.

    Implementations raise ``IdempotencyStoreUnavailableException`` when the
    backing store cannot be reached.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the marker stored under ``key``, or None."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds``."""
        ...

    async def close(self) -> None:
        """Release any connections held by the store."""
        return None
