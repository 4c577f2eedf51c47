"""Webhook handler interface."""

from abc import ABC, abstractmethod

from provider_gateway.domain.entities import Provider


class WebhookHandler(ABC):
    """
    Provider-specific business logic run for an authenticated webhook.

    Handlers receive the raw, already verified payload and parse the fields
    they need themselves.
    """

    provider: Provider

    @abstractmethod
    async def handle(self, raw_payload: bytes) -> None:
        """
        Apply the side effects of a webhook delivery.

        Raises:
            Any exception: reported and acknowledged by the gateway
        """
        ...
