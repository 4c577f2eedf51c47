"""Database infrastructure."""

from .connection import DatabaseSessionManager, db_manager, to_async_url
from .models import Base, ProviderHealthModel

__all__ = [
    "DatabaseSessionManager",
    "db_manager",
    "to_async_url",
    "Base",
    "ProviderHealthModel",
]
