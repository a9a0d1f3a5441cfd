"""Inbound webhook authenticity checks."""

from .signature import (
    SIGNATURE_VERSION,
    FRESHNESS_WINDOW_SECONDS,
    compute_signature,
    verify_signature,
)

__all__ = [
    "SIGNATURE_VERSION",
    "FRESHNESS_WINDOW_SECONDS",
    "compute_signature",
    "verify_signature",
]
