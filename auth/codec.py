"""
auth/codec.py -- base64url without padding (RFC 4648 section 5, RFC 7515 section 2).

Every segment of a compact token and every random refresh artifact goes
through these two functions. Decoding is strict: characters outside the
URL-safe alphabet, stray "=" padding, and impossible lengths are rejected
with Base64DecodeError instead of being silently discarded.
"""

from __future__ import annotations

import base64
import binascii
import re

_URLSAFE_RE = re.compile(r"[A-Za-z0-9_-]*")


class Base64DecodeError(ValueError):
    """Raised when text is not valid unpadded base64url."""


def b64url_encode(data: bytes) -> str:
    """Encode bytes as URL-safe base64 text with padding stripped."""
    return base64.b64encode(data).decode("ascii").replace("+", "-").replace("/", "_").rstrip("=")


def b64url_decode(text: str) -> bytes:
    """Decode unpadded URL-safe base64 text back to bytes.

    Re-pads to a multiple of 4 before decoding. A length of 1 mod 4 cannot
    be produced by any byte string and is rejected.
    """
    if not isinstance(text, str) or not _URLSAFE_RE.fullmatch(text):
        raise Base64DecodeError("Input contains characters outside the base64url alphabet.")
    remainder = len(text) % 4
    if remainder == 1:
        raise Base64DecodeError("Invalid base64url length.")
    padded = text.replace("-", "+").replace("_", "/") + "=" * (-len(text) % 4)
    try:
        return base64.b64decode(padded, validate=True)
    except binascii.Error as exc:
        raise Base64DecodeError(str(exc)) from exc
