"""
tests/test_jwt_interop.py -- Wire compatibility with a standard JWT library.

Tokens issued here must decode under python-jose with HS256, and HS256
tokens issued by python-jose must verify here.
"""

from __future__ import annotations

import time

import pytest
from jose import jwt as jose_jwt
from jose.exceptions import JWTError

from auth.errors import InvalidFormatError, InvalidSignatureError
from auth.tokens import TokenCodec, verify_token

SECRET = "interop-secret-0123456789abcdef012345"


def test_our_token_decodes_with_jose() -> None:
    token = TokenCodec(SECRET).issue({"userId": "u1", "email": "a@x.com", "authLevel": 1}, 3600)
    claims = jose_jwt.decode(token, SECRET, algorithms=["HS256"])
    assert claims["userId"] == "u1"
    assert claims["email"] == "a@x.com"
    assert claims["exp"] - claims["iat"] == 3600
    assert jose_jwt.get_unverified_header(token) == {"alg": "HS256", "typ": "JWT"}


def test_jose_rejects_our_token_under_other_secret() -> None:
    token = TokenCodec(SECRET).issue({"userId": "u1", "email": "a@x.com"}, 3600)
    with pytest.raises(JWTError):
        jose_jwt.decode(token, "another-secret-0123456789abcdef012", algorithms=["HS256"])


def test_jose_token_verifies_here() -> None:
    exp = int(time.time()) + 600
    token = jose_jwt.encode({"userId": "u2", "email": "b@x.com", "exp": exp}, SECRET, algorithm="HS256")
    claims = verify_token(token, SECRET)
    assert claims["userId"] == "u2"
    assert claims["exp"] == exp


def test_jose_hs512_token_is_rejected() -> None:
    exp = int(time.time()) + 600
    token = jose_jwt.encode({"userId": "u2", "exp": exp}, SECRET, algorithm="HS512")
    with pytest.raises((InvalidSignatureError, InvalidFormatError)):
        verify_token(token, SECRET)
