"""
Domain Interfaces (Ports)
"""

from .handlers import WebhookHandler
from .repositories import ProviderHealthRepository
from .stores import IdempotencyStore

__all__ = [
    "ProviderHealthRepository",
    "IdempotencyStore",
    "WebhookHandler",
]
