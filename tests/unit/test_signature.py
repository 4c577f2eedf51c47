"""
Unit tests for webhook signature verification.

These tests verify:
1. Only the exact digest of the exact payload under the exact secret passes
2. Malformed input returns False instead of raising
3. Provider-specific schemes (base64, Stripe timestamped)
"""

import base64
import hashlib
import hmac
import json

import pytest

from provider_gateway.service.webhooks import (
    WEBHOOK_SIGNATURE_VERIFIERS,
    compute_signature,
    make_stripe_verifier,
    verifier_for,
    verify_signature,
)
from tests.doubles import EPOCH, FrozenClock

SECRET = "whsec_test_secret"
PAYLOAD = json.dumps(
    {"event_id": "evt_123", "type": "TRANSACTIONS_UPDATE", "amount": 1500, "status": "posted"}
).encode()


def sign(payload: bytes, secret: str = SECRET) -> str:
    return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()


def flip(text: str, index: int) -> str:
    replacement = "0" if text[index] != "0" else "1"
    return text[:index] + replacement + text[index + 1:]


class TestComputeSignature:
    """Tests for compute_signature."""

    def test_matches_hmac_sha256_hex(self):
        assert compute_signature(PAYLOAD, SECRET) == sign(PAYLOAD)

    def test_base64_encoding(self):
        expected = base64.b64encode(
            hmac.new(SECRET.encode(), PAYLOAD, hashlib.sha256).digest()
        ).decode()

        assert compute_signature(PAYLOAD, SECRET, encoding="base64") == expected

    def test_str_payload_is_utf8_encoded(self):
        assert compute_signature(PAYLOAD.decode(), SECRET) == sign(PAYLOAD)

    def test_unknown_encoding(self):
        with pytest.raises(ValueError):
            compute_signature(PAYLOAD, SECRET, encoding="rot13")


class TestVerifySignature:
    """Tests for verify_signature."""

    def test_valid_signature(self):
        assert verify_signature(PAYLOAD, sign(PAYLOAD), SECRET) is True

    @pytest.mark.parametrize("prefix", ["sha256=", "v0="])
    def test_prefixed_signature(self, prefix):
        assert verify_signature(PAYLOAD, prefix + sign(PAYLOAD), SECRET) is True

    @pytest.mark.parametrize(
        "original,tampered",
        [
            (b'"amount": 1500', b'"amount": 9500'),
            (b'"evt_123"', b'"evt_124"'),
            (b'"posted"', b'"voided"'),
        ],
    )
    def test_tampered_payload_rejected(self, original, tampered):
        signature = sign(PAYLOAD)
        forged = PAYLOAD.replace(original, tampered)

        assert forged != PAYLOAD
        assert verify_signature(forged, signature, SECRET) is False

    def test_every_single_character_flip_rejected(self):
        signature = sign(PAYLOAD)

        for index in range(len(signature)):
            assert verify_signature(PAYLOAD, flip(signature, index), SECRET) is False

    def test_wrong_secret_rejected(self):
        assert verify_signature(PAYLOAD, sign(PAYLOAD), flip(SECRET, 0)) is False

    def test_uppercase_hex_rejected(self):
        assert verify_signature(PAYLOAD, sign(PAYLOAD).upper(), SECRET) is False

    @pytest.mark.parametrize("secret", ["", None])
    def test_empty_secret_fails_closed(self, secret):
        assert verify_signature(PAYLOAD, sign(PAYLOAD, "x"), secret) is False

    @pytest.mark.parametrize("signature", ["", None, "sha256=", "not-hex", "ab" * 10, "é" * 64])
    def test_malformed_signature_returns_false(self, signature):
        assert verify_signature(PAYLOAD, signature, SECRET) is False


class TestProviderVerifiers:
    """Tests for provider-specific signature schemes."""

    def test_belvo_uses_base64(self):
        signature = compute_signature(PAYLOAD, SECRET, encoding="base64")

        assert verifier_for("belvo")(PAYLOAD, signature, SECRET) is True
        assert verifier_for("belvo")(PAYLOAD, sign(PAYLOAD), SECRET) is False

    @pytest.mark.parametrize("provider", ["plaid", "bitso", "manual"])
    def test_hex_providers(self, provider):
        assert verifier_for(provider)(PAYLOAD, sign(PAYLOAD), SECRET) is True

    def test_unknown_provider_defaults_to_hex(self):
        assert verifier_for("unknown")(PAYLOAD, sign(PAYLOAD), SECRET) is True

    def test_stripe_registered(self):
        assert "stripe" in WEBHOOK_SIGNATURE_VERIFIERS


class TestStripeVerifier:
    """Tests for the timestamped t=...,v1=... scheme."""

    def _header(self, timestamp: int, payload: bytes = PAYLOAD) -> str:
        signed = f"{timestamp}.".encode() + payload
        return f"t={timestamp},v1={sign(signed)}"

    def test_valid_header(self):
        verify = make_stripe_verifier(FrozenClock())
        timestamp = int(EPOCH.timestamp())

        assert verify(PAYLOAD, self._header(timestamp), SECRET) is True

    def test_stale_timestamp_rejected(self):
        clock = FrozenClock()
        timestamp = int(EPOCH.timestamp())
        clock.advance(seconds=301)

        assert make_stripe_verifier(clock)(PAYLOAD, self._header(timestamp), SECRET) is False

    def test_within_tolerance_accepted(self):
        clock = FrozenClock()
        timestamp = int(EPOCH.timestamp())
        clock.advance(seconds=299)

        assert make_stripe_verifier(clock)(PAYLOAD, self._header(timestamp), SECRET) is True

    @pytest.mark.parametrize(
        "header",
        ["", "v1=abc", "t=1700000000", "t=soon,v1=abc", "garbage"],
    )
    def test_malformed_header(self, header):
        assert make_stripe_verifier(FrozenClock())(PAYLOAD, header, SECRET) is False
