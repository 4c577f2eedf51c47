"""Provider health and availability exceptions."""

from .base import DomainException


class ProviderUnavailableException(DomainException):
    """Raised by callers when a provider's circuit is open."""

    def __init__(self, provider: str, region: str):
        super().__init__(
            message=f"Provider {provider} is unavailable in region {region}",
            code="PROVIDER_UNAVAILABLE",
        )
        self.provider = provider
        self.region = region


class HealthStoreUnavailableException(DomainException):
    """Raised when the durable provider health store cannot be reached."""

    def __init__(self, message: str = "Provider health store unavailable"):
        super().__init__(
            message=message,
            code="HEALTH_STORE_UNAVAILABLE",
        )
