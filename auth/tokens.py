"""
auth/tokens.py -- HS256 compact token issuance and verification.

Security design decisions:
  Format: base64url(header) "." base64url(payload) "." base64url(HMAC-SHA256).
       The header is fixed to {"alg":"HS256","typ":"JWT"}. There is no
       algorithm negotiation: a header naming anything else (including "none")
       is rejected even when the signature happens to verify.

  Order of checks in verify_token(): segment count, then signature, then
       parsing, then expiry. Nothing about the payload is looked at before the
       signature passes, so a forged token and an expired token cannot be told
       apart by message or by which code path ran.

  Timestamps: iat/exp are integer seconds stamped by the issuer. Caller
       supplied iat/exp are overwritten, never trusted. A token is expired when
       now >= exp.

  Token types: this module signs whatever claims it is given. Keeping refresh
       tokens out of access-only paths is AuthCore's job (auth/service.py).

Layer rule: no imports from api/.
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable, Mapping

from auth.codec import b64url_decode, b64url_encode
from auth.errors import ExpiredTokenError, InvalidFormatError, InvalidSignatureError
from auth.signer import sign, verify_signature

ALGORITHM = "HS256"

_HEADER = {"alg": ALGORITHM, "typ": "JWT"}


def _now() -> int:
    return int(time.time())


def _encode_json(obj: Mapping[str, Any]) -> str:
    return b64url_encode(json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))


def _decode_json(segment: str) -> Any:
    try:
        return json.loads(b64url_decode(segment).decode("utf-8"))
    except ValueError as exc:  # Base64DecodeError, UnicodeDecodeError, JSONDecodeError
        raise InvalidFormatError() from exc


_ENCODED_HEADER = _encode_json(_HEADER)


# ---------------------------------------------------------------------------
# Issue / verify
# ---------------------------------------------------------------------------


def issue_access_token(
    claims: Mapping[str, Any],
    secret: str,
    ttl_seconds: int,
    now: int | None = None,
) -> str:
    """Sign claims into a compact token valid for ttl_seconds.

    Args:
        claims:      JSON-serializable mapping. Any iat/exp keys are replaced.
        secret:      HMAC key.
        ttl_seconds: Lifetime; exp = iat + ttl_seconds.
        now:         Issue time in epoch seconds. Defaults to the wall clock.
    """
    if ttl_seconds <= 0:
        raise ValueError("ttl_seconds must be positive")
    issued_at = _now() if now is None else now
    payload = {**claims, "iat": issued_at, "exp": issued_at + ttl_seconds}
    signing_input = f"{_ENCODED_HEADER}.{_encode_json(payload)}"
    return f"{signing_input}.{sign(signing_input, secret)}"


def verify_token(token: str, secret: str, now: int | None = None) -> dict[str, Any]:
    """Verify a compact token and return its claims.

    Raises:
        InvalidFormatError:    not three segments, bad base64url/JSON, wrong
                               header, or no integer exp claim.
        InvalidSignatureError: signature does not match header+payload.
        ExpiredTokenError:     now >= exp.
    """
    if not isinstance(token, str):
        raise InvalidFormatError()
    parts = token.split(".")
    if len(parts) != 3:
        raise InvalidFormatError()
    encoded_header, encoded_payload, signature = parts

    if not verify_signature(f"{encoded_header}.{encoded_payload}", signature, secret):
        raise InvalidSignatureError()

    header = _decode_json(encoded_header)
    if not isinstance(header, dict) or header.get("alg") != ALGORITHM:
        raise InvalidFormatError("Unsupported token header.")

    payload = _decode_json(encoded_payload)
    if not isinstance(payload, dict):
        raise InvalidFormatError()
    exp = payload.get("exp")
    # bool is an int subclass; true/false is not a timestamp.
    if not isinstance(exp, int) or isinstance(exp, bool):
        raise InvalidFormatError("Token is missing an integer exp claim.")

    current = _now() if now is None else now
    if current >= exp:
        raise ExpiredTokenError()
    return payload


# ---------------------------------------------------------------------------
# Bound codec
# ---------------------------------------------------------------------------


class TokenCodec:
    """issue/verify bound to one secret and one clock.

    Usage:
        codec = TokenCodec(config.secret)
        token = codec.issue({"userId": "u1", "email": "a@x.com"}, ttl_seconds=3600)
        claims = codec.verify(token)
    """

    def __init__(self, secret: str, clock: Callable[[], int] | None = None) -> None:
        self._secret = secret
        self._clock = clock or _now

    def now(self) -> int:
        return self._clock()

    def issue(self, claims: Mapping[str, Any], ttl_seconds: int) -> str:
        return issue_access_token(claims, self._secret, ttl_seconds, now=self._clock())

    def verify(self, token: str) -> dict[str, Any]:
        return verify_token(token, self._secret, now=self._clock())

    def digest(self, value: str) -> str:
        """Keyed digest used to store opaque values without storing them."""
        return sign(value, self._secret)
