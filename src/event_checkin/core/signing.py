"""Request signature derivation.

The backend verifies ``HMAC-SHA256(key=secret, msg=body + timestamp + secret)``
rendered as lowercase hex. The secret appears both as the key and at the end
of the message; that construction is what the server checks, so it is kept
exactly as is.
"""

from __future__ import annotations

import hashlib
import hmac


def sign(body: bytes, timestamp_millis: str, secret: bytes) -> str:
    """Return the hex signature for ``body`` sent at ``timestamp_millis``.

    ``body`` is the exact byte string put on the wire (``b""`` for GET).
    """
    message = body + timestamp_millis.encode("ascii") + secret
    return hmac.new(secret, message, hashlib.sha256).hexdigest()


def verify(body: bytes, timestamp_millis: str, secret: bytes, signature: str) -> bool:
    """Constant-time comparison of ``signature`` against :func:`sign`."""
    return hmac.compare_digest(sign(body, timestamp_millis, secret), signature.lower())
