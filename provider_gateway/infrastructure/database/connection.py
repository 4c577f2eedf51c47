"""Database connection and session management."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from provider_gateway.core.config import settings
from .models import Base

logger = structlog.get_logger(__name__)


def to_async_url(url: str) -> str:
    """Rewrite a plain Postgres URL to use the asyncpg driver."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


class DatabaseSessionManager:
    """
    Manages the health store's database engine and sessions.

    Each ``session()`` scope is its own short transaction, so circuit breaker
    writes commit independently of whatever request triggered them.
    """

    def __init__(self):
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._engine

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def init(self, database_url: str | None = None) -> None:
        """
        Initialize the database engine and session factory.

        Args:
            database_url: Optional override for the database URL
        """
        url = to_async_url(database_url or settings.database_url)

        engine_options: dict = {"echo": settings.debug}
        if url.startswith("sqlite"):
            # Share one connection so in-memory databases survive across sessions
            engine_options["poolclass"] = StaticPool
            engine_options["connect_args"] = {"check_same_thread": False}
        else:
            engine_options["pool_size"] = settings.db_pool_size
            engine_options["max_overflow"] = settings.db_max_overflow
            engine_options["pool_pre_ping"] = True

        self._engine = create_async_engine(url, **engine_options)
        self._sessionmaker = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def ping(self) -> bool:
        """Check that the database answers a trivial query."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (OperationalError, InterfaceError, OSError) as e:
            logger.warning("health_store_ping_failed", error=str(e))
            return False
        return True

    async def create_all(self) -> None:
        """Create missing tables (local development and tests)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose of the engine and its connection pool."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Provide a transactional scope around health store operations.

        Yields:
            An async database session, committed on success
        """
        if self._sessionmaker is None:
            raise RuntimeError("Database not initialized. Call init() first.")

        session = self._sessionmaker()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


db_manager = DatabaseSessionManager()
