"""Slack request signature verification.

Slack signs every request with ``X-Slack-Signature: v0=<hex>``, an
HMAC-SHA256 over ``v0:<timestamp>:<raw body>`` keyed with the app's signing
secret, and sends the timestamp in ``X-Slack-Request-Timestamp``.

- Comparison is constant time (``hmac.compare_digest`` on bytes).
- Timestamps outside the freshness window are rejected to stop replays.
- An unset secret rejects everything.
- The digest must be computed over the raw bytes, before form decoding.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time

logger = logging.getLogger(__name__)

SIGNATURE_VERSION = "v0"
FRESHNESS_WINDOW_SECONDS = 300


def compute_signature(secret: str, timestamp: str, raw_body: bytes) -> str:
    """Return the ``v0=<hex>`` signature Slack would send for ``raw_body``."""

    base = f"{SIGNATURE_VERSION}:{timestamp}:".encode("utf-8") + raw_body
    digest = hmac.new(secret.encode("utf-8"), base, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_VERSION}={digest}"


def verify_signature(
    secret: str | None,
    timestamp: str | None,
    raw_body: bytes,
    signature: str | None,
    *,
    now: float | None = None,
) -> bool:
    """Check a Slack request signature.

    Args:
        secret: Slack signing secret.
        timestamp: Value of the ``X-Slack-Request-Timestamp`` header.
        raw_body: Request body exactly as received.
        signature: Value of the ``X-Slack-Signature`` header.
        now: Current UNIX time, defaults to ``time.time()``.

    Returns:
        True only if the timestamp is fresh and the signature matches.
    """
    if not secret:
        logger.warning("Slack signing secret not set, rejecting request")
        return False
    if not timestamp or not signature:
        return False

    try:
        issued_at = float(int(timestamp))
    except (TypeError, ValueError, OverflowError):
        return False

    current = time.time() if now is None else now
    if abs(current - issued_at) > FRESHNESS_WINDOW_SECONDS:
        logger.warning("Slack request timestamp outside freshness window: %.40s", timestamp)
        return False

    expected = compute_signature(secret, timestamp, raw_body)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8", "replace"))
