"""Delivery identity for webhook de-duplication."""

import hashlib
import json

IDEMPOTENCY_KEY_PREFIX = "webhook:idempotency"

# Payload fields checked, in order, for a provider-assigned event id
EVENT_ID_FIELDS = ("event_id", "webhook_id", "id")


def _event_id(raw_payload: bytes) -> str | None:
    try:
        body = json.loads(raw_payload)
    except (ValueError, UnicodeDecodeError):
        return None

    if not isinstance(body, dict):
        return None

    for field in EVENT_ID_FIELDS:
        value = body.get(field)
        if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value):
            return f"{field}:{value}"
    return None


def webhook_idempotency_key(provider: str, raw_payload: bytes | str) -> str:
    """
    Key under which a delivery's outcome is recorded.

    A provider event id is preferred so re-serialised redeliveries collapse
    onto the same key; otherwise the SHA-256 of the raw bytes is used.
    """
    raw = raw_payload.encode("utf-8") if isinstance(raw_payload, str) else raw_payload
    identity = _event_id(raw)
    material = identity.encode("utf-8") if identity is not None else raw
    digest = hashlib.sha256(material).hexdigest()[:16]
    return f"{IDEMPOTENCY_KEY_PREFIX}:{provider}:{digest}"
