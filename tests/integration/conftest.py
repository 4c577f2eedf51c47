"""
Fixtures for integration tests.

Provides:
- In-memory SQLite health store behind the real SQLAlchemy repository
- Circuit breaker wired to a frozen clock
- Webhook service with recording handlers and an in-memory idempotency store
- Test client for the FastAPI app with dependencies overridden
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from provider_gateway.main import app
from provider_gateway.core.config import Settings
from provider_gateway.core.dependencies import (
    get_circuit_breaker,
    get_webhook_service,
)
from provider_gateway.application.services import (
    CircuitBreakerService,
    ProviderCallService,
    WebhookHandlerRegistry,
    WebhookService,
)
from provider_gateway.domain.entities import Provider
from provider_gateway.infrastructure.cache import InMemoryIdempotencyStore
from provider_gateway.infrastructure.database import DatabaseSessionManager
from provider_gateway.infrastructure.repositories import SqlAlchemyProviderHealthRepository
from provider_gateway.service.circuit import CircuitBreakerSettings
from tests.doubles import (
    WEBHOOK_SECRETS,
    FlakyHealthRepository,
    FrozenClock,
    RecordingWebhookHandler,
)


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def session_manager() -> AsyncGenerator[DatabaseSessionManager, None]:
    """Create an in-memory SQLite health store."""
    manager = DatabaseSessionManager()
    manager.init("sqlite+aiosqlite:///:memory:")
    await manager.create_all()

    yield manager

    await manager.close()


@pytest.fixture
def repository(session_manager) -> SqlAlchemyProviderHealthRepository:
    return SqlAlchemyProviderHealthRepository(session_manager.session)


@pytest.fixture
def flaky_repository(repository) -> FlakyHealthRepository:
    """Repository that can be switched to behave like an unreachable store."""
    return FlakyHealthRepository(repository)


# =============================================================================
# Circuit Breaker Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def breaker_settings() -> CircuitBreakerSettings:
    return CircuitBreakerSettings()


@pytest.fixture
def breaker(flaky_repository, breaker_settings, clock) -> CircuitBreakerService:
    """Circuit breaker over SQLite with default thresholds and a frozen clock."""
    return CircuitBreakerService(
        repository=flaky_repository,
        settings=breaker_settings,
        clock=clock,
    )


@pytest.fixture
def provider_calls(breaker, clock) -> ProviderCallService:
    return ProviderCallService(circuit_breaker=breaker, clock=clock)


# =============================================================================
# Webhook Fixtures
# =============================================================================

@pytest.fixture
def idempotency_store() -> InMemoryIdempotencyStore:
    return InMemoryIdempotencyStore()


@pytest.fixture
def plaid_handler() -> RecordingWebhookHandler:
    return RecordingWebhookHandler(Provider.PLAID)


@pytest.fixture
def belvo_handler() -> RecordingWebhookHandler:
    return RecordingWebhookHandler(Provider.BELVO, error=RuntimeError("account not found"))


@pytest.fixture
def webhook_service(plaid_handler, belvo_handler, idempotency_store) -> WebhookService:
    """Webhook service with a working plaid handler and a failing belvo handler."""
    return WebhookService(
        registry=WebhookHandlerRegistry([plaid_handler, belvo_handler]),
        idempotency_store=idempotency_store,
        secrets=WEBHOOK_SECRETS,
        settings=Settings(),
    )


# =============================================================================
# App Client Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def client(
    breaker: CircuitBreakerService,
    webhook_service: WebhookService,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test client with overridden dependencies.

    This client:
    - Uses an in-memory SQLite health store
    - Routes webhooks to recording handlers
    """
    app.dependency_overrides[get_circuit_breaker] = lambda: breaker
    app.dependency_overrides[get_webhook_service] = lambda: webhook_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
