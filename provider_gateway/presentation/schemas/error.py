"""Pydantic schema for API error responses."""

from pydantic import BaseModel, Field


class ErrorResponseSchema(BaseModel):
    """Standard error response format for all API errors."""
    error: str = Field(
        ...,
        description="Error code",
        examples=["PROVIDER_UNAVAILABLE"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Provider plaid is unavailable in region US"],
    )
    request_id: str | None = Field(
        None,
        description="Request ID for tracing",
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "error": "INVALID_WEBHOOK_SIGNATURE",
                    "message": "Webhook verification failed",
                    "request_id": "abc123",
                }
            ]
        }
    }
