"""Webhook service - routes authenticated deliveries to provider handlers."""

from typing import Dict, Iterable, Mapping, Optional

import structlog

from provider_gateway.core.clock import Clock, system_clock
from provider_gateway.core.config import Settings, settings as app_settings
from provider_gateway.domain.entities import Provider, WebhookResult
from provider_gateway.domain.exceptions import WebhookNotConfiguredException
from provider_gateway.domain.interfaces import IdempotencyStore, WebhookHandler
from provider_gateway.service.deadlines import (
    TimeoutSettings,
    timeout_settings,
    with_timeout,
)
from provider_gateway.service.webhooks import (
    WebhookOptions,
    process_webhook,
    verifier_for,
)

logger = structlog.get_logger(__name__)


class WebhookHandlerRegistry:
    """Maps each provider to the handler that applies its webhooks."""

    def __init__(self, handlers: Iterable[WebhookHandler] = ()):
        self._handlers: Dict[Provider, WebhookHandler] = {}
        for handler in handlers:
            self.register(handler)

    def register(self, handler: WebhookHandler) -> None:
        if handler.provider in self._handlers:
            logger.warning("webhook_handler_replaced", provider=handler.provider.value)
        self._handlers[handler.provider] = handler

    def get(self, provider: Provider) -> Optional[WebhookHandler]:
        return self._handlers.get(provider)

    def __contains__(self, provider: Provider) -> bool:
        return provider in self._handlers


class WebhookService:
    """
    Application service for inbound webhooks.

    Resolves the provider's shared secret and signature scheme, then runs the
    registered handler through ``process_webhook`` under the
    ``webhook_handler`` timeout preset.
    """

    def __init__(
        self,
        registry: WebhookHandlerRegistry,
        idempotency_store: Optional[IdempotencyStore] = None,
        secrets: Optional[Mapping[str, str]] = None,
        settings: Settings = app_settings,
        timeouts: TimeoutSettings = timeout_settings,
        clock: Clock = system_clock,
    ):
        self._registry = registry
        self._store = idempotency_store
        self._secrets = dict(settings.webhook_secrets if secrets is None else secrets)
        self._settings = settings
        self._timeouts = timeouts
        self._clock = clock

    async def handle(
        self,
        provider: Provider | str,
        raw_payload: bytes,
        signature: Optional[str],
    ) -> WebhookResult:
        """
        Process one inbound delivery.

        Args:
            provider: Provider the delivery claims to come from
            raw_payload: Exact request body
            signature: Signature header value

        Returns:
            WebhookResult from the gateway

        Raises:
            WebhookNotConfiguredException: If no secret is configured
        """
        provider = Provider(provider)
        secret = self._secrets.get(provider.value)
        if not secret:
            logger.warning("webhook_not_configured", provider=provider.value)
            raise WebhookNotConfiguredException(provider.value)

        handler = self._registry.get(provider)
        config = self._timeouts.config_for(
            "webhook_handler",
            operation_name=f"{provider.value}_webhook",
        )

        async def business_logic() -> None:
            if handler is None:
                logger.info(
                    "webhook_unhandled",
                    provider=provider.value,
                    payload_bytes=len(raw_payload),
                )
                return
            await with_timeout(lambda: handler.handle(raw_payload), config, clock=self._clock)

        options = WebhookOptions(
            provider=provider.value,
            secret=secret,
            idempotency_store=self._store,
            idempotency_ttl_seconds=self._settings.webhook_idempotency_ttl_seconds,
            failed_ttl_seconds=self._settings.webhook_failed_ttl_seconds,
            verifier=verifier_for(provider.value),
        )
        return await process_webhook(raw_payload, signature, options, business_logic)
