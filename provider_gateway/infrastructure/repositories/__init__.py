"""Repository implementations."""

from .provider_health_repository import SqlAlchemyProviderHealthRepository

__all__ = [
    "SqlAlchemyProviderHealthRepository",
]
