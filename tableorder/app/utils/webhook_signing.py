from __future__ import annotations

"""Helpers for signing and verifying Razorpay webhook requests."""

import hashlib
import hmac


def sign(secret: str, body: bytes) -> str:
    """Return the ``X-Razorpay-Signature`` value for ``body``.

    Parameters
    ----------
    secret:
        Webhook secret configured in the Razorpay dashboard.
    body:
        Raw request body in bytes.
    """
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify(secret: str, body: bytes, header_sig: str | None) -> bool:
    """Validate a webhook request signature.

    Returns ``True`` if ``header_sig`` matches the HMAC-SHA256 of ``body``
    under ``secret``. An empty secret never verifies.
    """
    if not secret or not header_sig:
        return False
    return hmac.compare_digest(sign(secret, body), header_sig)
