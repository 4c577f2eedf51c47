"""Repository interfaces for data persistence."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from provider_gateway.domain.entities import Provider, ProviderHealthRecord


class ProviderHealthRepository(ABC):
    """
    Abstract repository for per-(provider, region) health records.

    Every method reads or writes exactly one row. Implementations must raise
    ``HealthStoreUnavailableException`` when the store cannot be reached so
    the circuit breaker can tell connectivity failures apart from bugs.
    """

    @abstractmethod
    async def find(
        self,
        provider: Provider,
        region: str,
    ) -> Optional[ProviderHealthRecord]:
        """
        Retrieve the health record for a partition.

        Args:
            provider: The provider identifier
            region: The region partition

        Returns:
            The record if one exists, None otherwise
        """
        ...

    @abstractmethod
    async def get_or_create(
        self,
        provider: Provider,
        region: str,
        now: datetime,
    ) -> ProviderHealthRecord:
        """
        Retrieve the health record, creating a closed, zeroed one if absent.

        Args:
            provider: The provider identifier
            region: The region partition
            now: Timestamp used for a newly created record's window

        Returns:
            The existing or newly created record
        """
        ...

    @abstractmethod
    async def increment(
        self,
        provider: Provider,
        region: str,
        now: datetime,
        failed: int = 0,
        successful: int = 0,
        response_time_ms: int | None = None,
        error: str | None = None,
    ) -> ProviderHealthRecord:
        """
        Atomically increment the call counters of an existing record.

        Args:
            provider: The provider identifier
            region: The region partition
            now: Timestamp of the observation
            failed: Amount to add to ``failed_calls``
            successful: Amount to add to ``successful_calls``
            response_time_ms: Latency sample to store, if any
            error: Error message of a failed call, if any

        Returns:
            The record as it stands after the increment
        """
        ...

    @abstractmethod
    async def upsert(
        self,
        provider: Provider,
        region: str,
        now: datetime,
        **changes: Any,
    ) -> ProviderHealthRecord:
        """
        Apply a patch to the record, creating it first if absent.

        ``updated_at`` is always refreshed to ``now``.

        Returns:
            The updated record
        """
        ...

    @abstractmethod
    async def reset(
        self,
        provider: Provider,
        region: str,
        now: datetime,
    ) -> ProviderHealthRecord:
        """
        Force the record to closed, healthy, zero counters and a new window.

        Returns:
            The reset record
        """
        ...
