"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data containers). Stores and the service do the
work; the only logic here is the mapping between TokenPayload and the wire
claim names.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Mapping

from auth.errors import InvalidFormatError

REFRESH_TOKEN_TYPE = "refresh"


class AuthLevel(IntEnum):
    """Ordered authorization rank. Compare with >=, never as bit flags."""

    USER = 1
    ADMIN = 9


@dataclass(frozen=True)
class Credential:
    """Login input. Lives only for the duration of one login call."""

    email: str
    password: str

    def __repr__(self) -> str:
        return f"Credential(email={self.email!r}, password='***')"


@dataclass
class User:
    """A registered account.

    hashed_password is the bcrypt record (salt and cost embedded).
    id is a uuid4 string assigned by the store on create.
    """

    email: str
    nickname: str
    hashed_password: str
    auth_level: AuthLevel = AuthLevel.USER
    is_active: bool = True
    id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.auth_level >= AuthLevel.ADMIN


@dataclass(frozen=True)
class TokenPayload:
    """Verified claims of an access or refresh token.

    Built fresh for every issuance and never mutated after signing. The wire
    form uses the camelCase claim names userId / email / authLevel.
    """

    user_id: str
    email: str
    auth_level: AuthLevel = AuthLevel.USER
    iat: int = 0
    exp: int = 0
    type: str | None = None

    @property
    def is_refresh(self) -> bool:
        return self.type == REFRESH_TOKEN_TYPE

    def to_claims(self) -> dict[str, Any]:
        """Claims to sign. iat/exp are omitted: the token codec stamps them."""
        claims: dict[str, Any] = {
            "userId": self.user_id,
            "email": self.email,
            "authLevel": int(self.auth_level),
        }
        if self.type is not None:
            claims["type"] = self.type
        return claims

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "TokenPayload":
        """Map verified wire claims onto a TokenPayload.

        Raises InvalidFormatError when identity claims are missing or have the
        wrong shape. Refresh tokens carry no authLevel; it defaults to USER.
        """
        user_id = claims.get("userId")
        email = claims.get("email")
        if not isinstance(user_id, str) or not user_id or not isinstance(email, str):
            raise InvalidFormatError("Token is missing identity claims.")
        raw_level = claims.get("authLevel", int(AuthLevel.USER))
        try:
            level = AuthLevel(raw_level)
        except ValueError:
            raise InvalidFormatError("Unknown authorization level.") from None
        token_type = claims.get("type")
        iat = claims.get("iat")
        exp = claims.get("exp")
        if not isinstance(exp, int):
            raise InvalidFormatError("Token is missing an integer exp claim.")
        return cls(
            user_id=user_id,
            email=email,
            auth_level=level,
            iat=iat if isinstance(iat, int) else 0,
            exp=exp,
            type=token_type if isinstance(token_type, str) else None,
        )


@dataclass(frozen=True)
class LoginResult:
    """Outcome of login or refresh.

    refresh_token travels out of band (HTTP-only cookie), never in the JSON
    body. It is None when a refresh did not rotate the artifact.
    """

    access_token: str
    user_id: str
    refresh_token: str | None = None
