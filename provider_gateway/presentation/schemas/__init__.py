"""Pydantic schemas for API request/response validation."""

from .circuit import CircuitStateSchema
from .error import ErrorResponseSchema
from .webhook import WebhookAcknowledgementSchema

__all__ = [
    "CircuitStateSchema",
    "ErrorResponseSchema",
    "WebhookAcknowledgementSchema",
]
