"""Integrated provider identifiers."""

from enum import Enum


DEFAULT_REGION = "US"


class Provider(str, Enum):
    """External integrations guarded by the resilience layer."""

    BELVO = "belvo"
    PLAID = "plaid"
    BITSO = "bitso"
    MANUAL = "manual"
    STRIPE = "stripe"


def circuit_key(provider: "Provider | str", region: str) -> str:
    """Isolation key for a (provider, region) partition."""
    value = provider.value if isinstance(provider, Provider) else provider
    return f"{value}:{region}"
