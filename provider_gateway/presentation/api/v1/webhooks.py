"""Inbound provider webhook endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from provider_gateway.application.services import WebhookService
from provider_gateway.core.config import settings
from provider_gateway.core.dependencies import get_webhook_service
from provider_gateway.domain.entities import Provider
from provider_gateway.domain.exceptions import InvalidWebhookSignatureException
from provider_gateway.presentation.schemas import (
    ErrorResponseSchema,
    WebhookAcknowledgementSchema,
)
from provider_gateway.service.webhooks import create_webhook_response

webhook_router = APIRouter(
    prefix="/webhooks",
    responses={
        401: {"model": ErrorResponseSchema, "description": "Invalid signature"},
        404: {"model": ErrorResponseSchema, "description": "Provider not configured"},
    },
)


@webhook_router.post(
    "/{provider}",
    response_model=WebhookAcknowledgementSchema,
    status_code=200,
    summary="Receive Provider Webhook",
    description=(
        "Verifies the HMAC signature of the raw body and processes the delivery "
        "at most once. Always acknowledged with 200 once the signature is valid."
    ),
)
async def receive_webhook(
    provider: Provider,
    request: Request,
    webhook_service: Annotated[WebhookService, Depends(get_webhook_service)],
) -> WebhookAcknowledgementSchema:
    # Signatures cover the exact bytes, so read the body before any parsing
    raw_payload = await request.body()
    signature = request.headers.get(settings.webhook_signature_header)

    result = await webhook_service.handle(provider, raw_payload, signature)
    if not result.success:
        raise InvalidWebhookSignatureException(provider.value)

    acknowledgement = create_webhook_response(result)
    return WebhookAcknowledgementSchema(**acknowledgement.to_dict())
