"""Pydantic schema for webhook acknowledgements."""

from pydantic import BaseModel, Field


class WebhookAcknowledgementSchema(BaseModel):
    """Body returned to the provider for every delivery."""

    received: bool = Field(..., description="Whether the delivery was accepted")
    message: str = Field(..., examples=["Webhook processed successfully"])
