"""Razorpay checkout signature verification."""
from __future__ import annotations

import hashlib
import hmac


def compute_payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    """Return the hex HMAC-SHA256 of ``order_id|payment_id`` keyed with ``secret``."""

    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_payment_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """Check a checkout signature in constant time. Pure; never raises on mismatch."""

    if not (order_id and payment_id and signature and secret):
        return False
    expected = compute_payment_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected, signature)


__all__ = ["compute_payment_signature", "verify_payment_signature"]
