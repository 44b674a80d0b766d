"""
auth/signer.py -- HMAC-SHA256 signatures for compact tokens.

sign() returns the base64url text of the raw 32-byte digest, which is the
third segment of an HS256 JWT. The same function keys the refresh-artifact
digests stored by auth/refresh.py.
"""

from __future__ import annotations

import hashlib
import hmac

from auth.codec import b64url_encode


def _to_bytes(value: str | bytes) -> bytes:
    return value if isinstance(value, bytes) else value.encode("utf-8")


def sign(message: str | bytes, secret: str | bytes) -> str:
    """Return base64url(HMAC-SHA256(secret, message)). Deterministic and stateless."""
    digest = hmac.new(_to_bytes(secret), _to_bytes(message), hashlib.sha256).digest()
    return b64url_encode(digest)


def verify_signature(message: str | bytes, signature: str, secret: str | bytes) -> bool:
    """Recompute the signature and compare in constant time.

    Both sides are compared as UTF-8 bytes: hmac.compare_digest refuses
    non-ASCII str, and a tampered segment may contain anything.
    """
    expected = sign(message, secret)
    return hmac.compare_digest(expected.encode("ascii"), _to_bytes(signature))
