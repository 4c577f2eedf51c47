"""Dependency injection for FastAPI."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from provider_gateway.core.config import settings
from provider_gateway.domain.interfaces import IdempotencyStore
from provider_gateway.infrastructure.cache import (
    InMemoryIdempotencyStore,
    RedisIdempotencyStore,
)
from provider_gateway.infrastructure.database import db_manager
from provider_gateway.infrastructure.repositories import SqlAlchemyProviderHealthRepository
from provider_gateway.application.services import (
    CircuitBreakerService,
    ProviderCallService,
    WebhookHandlerRegistry,
    WebhookService,
)
from provider_gateway.service.circuit import circuit_breaker_settings


# Process-wide singletons: the breaker's in-memory state must outlive requests
@lru_cache
def get_circuit_breaker() -> CircuitBreakerService:
    """Get the shared CircuitBreakerService instance."""
    repository = SqlAlchemyProviderHealthRepository(db_manager.session)
    return CircuitBreakerService(
        repository=repository,
        settings=circuit_breaker_settings,
    )


@lru_cache
def get_idempotency_store() -> IdempotencyStore:
    """Get the webhook idempotency store (Redis when configured)."""
    if settings.redis_url:
        return RedisIdempotencyStore.from_url(settings.redis_url)
    return InMemoryIdempotencyStore()


@lru_cache
def get_webhook_handler_registry() -> WebhookHandlerRegistry:
    """Get the shared webhook handler registry."""
    return WebhookHandlerRegistry()


# Service dependencies
def get_webhook_service(
    registry: Annotated[WebhookHandlerRegistry, Depends(get_webhook_handler_registry)],
    idempotency_store: Annotated[IdempotencyStore, Depends(get_idempotency_store)],
) -> WebhookService:
    """Get a WebhookService instance with all dependencies."""
    return WebhookService(
        registry=registry,
        idempotency_store=idempotency_store,
    )


def get_provider_call_service(
    circuit_breaker: Annotated[CircuitBreakerService, Depends(get_circuit_breaker)],
) -> ProviderCallService:
    """Get a ProviderCallService bound to the shared circuit breaker."""
    return ProviderCallService(circuit_breaker=circuit_breaker)
