"""
HMAC-SHA256 webhook signature verification.

Signatures are compared as strings in constant time, so the provided value
must match the canonical encoding exactly (lowercase hex by default).
"""

import base64
import hashlib
import hmac
from typing import Callable, Dict, Optional

import structlog

from provider_gateway.core.clock import Clock, system_clock

logger = structlog.get_logger(__name__)

SIGNATURE_PREFIXES = ("sha256=", "v0=")

# Stripe rejects deliveries whose timestamp is further than this from now
STRIPE_TOLERANCE_SECONDS = 300

SignatureVerifier = Callable[[bytes, str, str], bool]


def _as_bytes(value: bytes | str) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def compute_signature(raw_payload: bytes | str, secret: str, encoding: str = "hex") -> str:
    """
    Compute the HMAC-SHA256 of ``raw_payload`` under ``secret``.

    Args:
        raw_payload: Exact bytes received (or a str, encoded as UTF-8)
        secret: Shared secret
        encoding: ``"hex"`` (lowercase) or ``"base64"``

    Returns:
        The encoded digest
    """
    digest = hmac.new(_as_bytes(secret), _as_bytes(raw_payload), hashlib.sha256)
    if encoding == "hex":
        return digest.hexdigest()
    if encoding == "base64":
        return base64.b64encode(digest.digest()).decode("ascii")
    raise ValueError(f"Unsupported signature encoding: {encoding}")


def _strip_prefix(signature: str) -> str:
    for prefix in SIGNATURE_PREFIXES:
        if signature.startswith(prefix):
            return signature[len(prefix):]
    return signature


def verify_signature(
    raw_payload: bytes | str,
    provided_signature: Optional[str],
    shared_secret: Optional[str],
    encoding: str = "hex",
) -> bool:
    """
    Check a webhook signature in constant time.

    Never raises: an empty secret, a missing signature or a value that is not
    a well-formed digest all return False.
    """
    if not shared_secret or not provided_signature:
        return False

    candidate = _strip_prefix(provided_signature.strip())
    if not candidate:
        return False

    expected = compute_signature(raw_payload, shared_secret, encoding)
    try:
        candidate_bytes = candidate.encode("ascii")
    except UnicodeEncodeError:
        return False

    return hmac.compare_digest(candidate_bytes, expected.encode("ascii"))


def verify_hex_signature(raw_payload: bytes, signature: str, secret: str) -> bool:
    return verify_signature(raw_payload, signature, secret, encoding="hex")


def verify_base64_signature(raw_payload: bytes, signature: str, secret: str) -> bool:
    return verify_signature(raw_payload, signature, secret, encoding="base64")


def make_stripe_verifier(
    clock: Clock = system_clock,
    tolerance_seconds: int = STRIPE_TOLERANCE_SECONDS,
) -> SignatureVerifier:
    """
    Build a verifier for ``t=<timestamp>,v1=<hex>`` signature headers.

    The signed content is ``"{t}.{payload}"``. Deliveries whose timestamp is
    more than ``tolerance_seconds`` away from the clock are rejected.
    """

    def _verify(raw_payload: bytes, signature: str, secret: str) -> bool:
        if not signature:
            return False

        parts = dict(
            part.split("=", 1) for part in signature.split(",") if "=" in part
        )
        timestamp = parts.get("t")
        digest = parts.get("v1")
        if not timestamp or not digest:
            return False

        try:
            timestamp_seconds = int(timestamp)
        except ValueError:
            return False

        if abs(clock.now().timestamp() - timestamp_seconds) > tolerance_seconds:
            logger.warning("webhook_signature_stale", timestamp=timestamp_seconds)
            return False

        signed = _as_bytes(timestamp) + b"." + _as_bytes(raw_payload)
        return verify_signature(signed, digest, secret, encoding="hex")

    return _verify


WEBHOOK_SIGNATURE_VERIFIERS: Dict[str, SignatureVerifier] = {
    "plaid": verify_hex_signature,
    "belvo": verify_base64_signature,
    "bitso": verify_hex_signature,
    "manual": verify_hex_signature,
    "stripe": make_stripe_verifier(),
}


def verifier_for(provider: str) -> SignatureVerifier:
    """Signature scheme used by a provider (hex HMAC when unknown)."""
    return WEBHOOK_SIGNATURE_VERIFIERS.get(provider, verify_hex_signature)
