"""SQLAlchemy implementation of ProviderHealthRepository."""

from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncContextManager, Callable, Iterator, Optional
from uuid import uuid4

import structlog
from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from provider_gateway.domain.entities import HealthStatus, Provider, ProviderHealthRecord
from provider_gateway.domain.exceptions import HealthStoreUnavailableException
from provider_gateway.domain.interfaces import ProviderHealthRepository
from provider_gateway.infrastructure.database.models import ProviderHealthModel

logger = structlog.get_logger(__name__)

SessionScope = Callable[[], AsyncContextManager[AsyncSession]]

_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}

_PATCHABLE_FIELDS = {
    "status",
    "circuit_breaker_open",
    "failed_calls",
    "successful_calls",
    "avg_response_time_ms",
    "window_start_at",
    "last_success_at",
    "last_failure_at",
    "last_error",
}


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Translate connectivity failures into HealthStoreUnavailableException."""
    try:
        yield
    except (OperationalError, InterfaceError, OSError) as e:
        logger.warning("health_store_unavailable", operation=operation, error=str(e))
        raise HealthStoreUnavailableException(
            f"Provider health store unavailable during {operation}"
        ) from e


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlAlchemyProviderHealthRepository(ProviderHealthRepository):
    """
    SQLAlchemy implementation of the provider health repository.

    Each call runs in its own transaction obtained from ``session_scope``
    (``DatabaseSessionManager.session``) and touches a single row.
    Counter updates are issued as ``col = col + n`` so concurrent writers
    do not lose increments.
    """

    def __init__(self, session_scope: SessionScope):
        self._session_scope = session_scope

    async def find(
        self,
        provider: Provider,
        region: str,
    ) -> Optional[ProviderHealthRecord]:
        """Retrieve the health record for a partition."""
        with _store_errors("find"):
            async with self._session_scope() as session:
                model = await self._select(session, provider, region)

        if model is None:
            return None

        return self._to_entity(model)

    async def get_or_create(
        self,
        provider: Provider,
        region: str,
        now: datetime,
    ) -> ProviderHealthRecord:
        """Retrieve the record, inserting a closed, zeroed one if absent."""
        with _store_errors("get_or_create"):
            async with self._session_scope() as session:
                model = await self._get_or_create(session, provider, region, now)

        return self._to_entity(model)

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
        """Atomically add to the call counters and note the observation."""
        values: dict[str, Any] = {
            "failed_calls": ProviderHealthModel.failed_calls + failed,
            "successful_calls": ProviderHealthModel.successful_calls + successful,
            "updated_at": now,
        }
        if response_time_ms is not None:
            values["avg_response_time_ms"] = int(response_time_ms)
        if failed:
            values["last_failure_at"] = now
            values["last_error"] = error
        if successful:
            values["last_success_at"] = now

        with _store_errors("increment"):
            async with self._session_scope() as session:
                await self._get_or_create(session, provider, region, now)
                await self._update(session, provider, region, values)
                model = await self._select(session, provider, region)

        return self._to_entity(model)

    async def upsert(
        self,
        provider: Provider,
        region: str,
        now: datetime,
        **changes: Any,
    ) -> ProviderHealthRecord:
        """Patch the record (creating it first if absent)."""
        unknown = set(changes) - _PATCHABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot patch health record fields: {sorted(unknown)}")

        values = {
            key: value.value if isinstance(value, Enum) else value
            for key, value in changes.items()
        }
        values["updated_at"] = now

        with _store_errors("upsert"):
            async with self._session_scope() as session:
                await self._get_or_create(session, provider, region, now)
                await self._update(session, provider, region, values)
                model = await self._select(session, provider, region)

        return self._to_entity(model)

    async def reset(
        self,
        provider: Provider,
        region: str,
        now: datetime,
    ) -> ProviderHealthRecord:
        """Force closed, healthy, zero counters and a fresh window."""
        return await self.upsert(
            provider,
            region,
            now,
            status=HealthStatus.HEALTHY,
            circuit_breaker_open=False,
            failed_calls=0,
            successful_calls=0,
            window_start_at=now,
            last_error=None,
        )

    async def _select(
        self,
        session: AsyncSession,
        provider: Provider,
        region: str,
    ) -> Optional[ProviderHealthModel]:
        stmt = (
            select(ProviderHealthModel)
            .where(
                ProviderHealthModel.provider == provider.value,
                ProviderHealthModel.region == region,
            )
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def _get_or_create(
        self,
        session: AsyncSession,
        provider: Provider,
        region: str,
        now: datetime,
    ) -> ProviderHealthModel:
        model = await self._select(session, provider, region)
        if model is not None:
            return model

        dialect = session.get_bind().dialect.name
        insert = _INSERTS.get(dialect, postgresql_insert)
        stmt = (
            insert(ProviderHealthModel)
            .values(
                id=str(uuid4()),
                provider=provider.value,
                region=region,
                status=HealthStatus.HEALTHY.value,
                circuit_breaker_open=False,
                failed_calls=0,
                successful_calls=0,
                avg_response_time_ms=0,
                window_start_at=now,
                created_at=now,
                updated_at=now,
            )
            # Another instance may create the row between our read and insert
            .on_conflict_do_nothing(index_elements=["provider", "region"])
        )
        result = await session.execute(stmt)
        if result.rowcount == 1:
            logger.info("provider_health_record_created", provider=provider.value, region=region)

        return await self._select(session, provider, region)

    async def _update(
        self,
        session: AsyncSession,
        provider: Provider,
        region: str,
        values: dict[str, Any],
    ) -> None:
        stmt = (
            update(ProviderHealthModel)
            .where(
                ProviderHealthModel.provider == provider.value,
                ProviderHealthModel.region == region,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)

    def _to_entity(self, model: ProviderHealthModel) -> ProviderHealthRecord:
        """Convert database model to domain entity."""
        return ProviderHealthRecord(
            provider=Provider(model.provider),
            region=model.region,
            status=HealthStatus(model.status),
            circuit_breaker_open=model.circuit_breaker_open,
            failed_calls=model.failed_calls,
            successful_calls=model.successful_calls,
            window_start_at=_as_utc(model.window_start_at),
            updated_at=_as_utc(model.updated_at),
            avg_response_time_ms=model.avg_response_time_ms,
            last_success_at=_as_utc(model.last_success_at),
            last_failure_at=_as_utc(model.last_failure_at),
            last_error=model.last_error,
            created_at=_as_utc(model.created_at),
        )
