"""
auth/refresh.py -- The two refresh-artifact strategies.

Exactly one strategy is active per process, chosen by
AuthConfig.refresh_strategy and built by build_refresh_strategy().

StatefulRefresh ("stateful", default)
    The artifact is 32 random bytes (256 bits), base64url-encoded, handed to
    the client once. The store keeps only HMAC-SHA256(secret, artifact) in the
    user's single refresh slot, the same keyed-digest approach used for
    long-lived API keys: a leaked users table yields no redeemable values,
    and the digest is deterministic so lookup stays O(1). Issuing overwrites
    the slot, so a user has at most one live artifact. Logout clears it.
    Artifacts carry no expiry of their own; they live until rotated or
    cleared.

StatelessRefresh ("stateless")
    The artifact is a compact token {userId, email, type: "refresh"} signed
    with the access-token secret and valid for refresh_token_ttl seconds.
    Sharing the secret is safe only because access-only verification rejects
    type=refresh. Nothing is stored, so nothing can be revoked before natural
    expiry: revoke() is a no-op and logout does not invalidate the artifact.
"""

from __future__ import annotations

import logging
import secrets
from typing import Protocol

from auth.codec import b64url_encode
from auth.errors import InvalidTokenTypeError, NotFoundError
from auth.models import REFRESH_TOKEN_TYPE, TokenPayload, User
from auth.store import UserStore
from auth.tokens import TokenCodec

logger = logging.getLogger("hotdeal.auth")

ARTIFACT_BYTES = 32


class RefreshStrategy(Protocol):
    """Issue, redeem, and revoke refresh artifacts."""

    name: str

    def issue(self, user: User) -> str: ...

    def redeem(self, artifact: str) -> User: ...

    def exchange(self, artifact: str) -> tuple[User, str | None]: ...

    def revoke(self, user_id: str) -> None: ...


class StatefulRefresh:
    name = "stateful"

    def __init__(self, store: UserStore, codec: TokenCodec) -> None:
        self._store = store
        self._codec = codec

    def issue(self, user: User) -> str:
        """Generate a fresh artifact and overwrite the user's refresh slot with its digest."""
        artifact = b64url_encode(secrets.token_bytes(ARTIFACT_BYTES))
        self._store.update_refresh_token(user.id, self._codec.digest(artifact))
        return artifact

    def redeem(self, artifact: str) -> User:
        """Return the user whose slot holds this artifact. Raises NotFoundError otherwise."""
        if not artifact:
            raise NotFoundError("Refresh token not recognised.")
        user = self._store.find_by_refresh_token(self._codec.digest(artifact))
        if user is None:
            raise NotFoundError("Refresh token not recognised.")
        return user

    def exchange(self, artifact: str) -> tuple[User, str]:
        """Redeem artifact and rotate the slot to a new one.

        The swap only succeeds if the slot still holds this artifact's digest,
        so two concurrent exchanges of the same artifact yield one winner; the
        loser gets NotFoundError as if the artifact had already been used.
        """
        user = self.redeem(artifact)
        new_artifact = b64url_encode(secrets.token_bytes(ARTIFACT_BYTES))
        swapped = self._store.rotate_refresh_token(
            user.id, self._codec.digest(artifact), self._codec.digest(new_artifact)
        )
        if not swapped:
            logger.warning("Refresh token reused concurrently: id=%s", user.id)
            raise NotFoundError("Refresh token not recognised.")
        return user, new_artifact

    def revoke(self, user_id: str) -> None:
        self._store.update_refresh_token(user_id, None)


class StatelessRefresh:
    name = "stateless"

    def __init__(self, store: UserStore, codec: TokenCodec, ttl_seconds: int) -> None:
        self._store = store
        self._codec = codec
        self._ttl = ttl_seconds

    def issue(self, user: User) -> str:
        claims = {"userId": user.id, "email": user.email, "type": REFRESH_TOKEN_TYPE}
        return self._codec.issue(claims, self._ttl)

    def redeem(self, artifact: str) -> User:
        """Verify the signed artifact, require type=refresh, and load its user.

        Raises InvalidFormatError / InvalidSignatureError / ExpiredTokenError
        from verification, InvalidTokenTypeError for an access token, and
        NotFoundError if the user no longer exists.
        """
        payload = TokenPayload.from_claims(self._codec.verify(artifact))
        if not payload.is_refresh:
            raise InvalidTokenTypeError("Refresh token required.")
        user = self._store.find_by_id(payload.user_id)
        if user is None:
            raise NotFoundError("User not found.")
        return user

    def exchange(self, artifact: str) -> tuple[User, None]:
        # Signed artifacts are not rotated; the client keeps the one it has.
        return self.redeem(artifact), None

    def revoke(self, user_id: str) -> None:
        # Stateless: nothing server-side to clear. The artifact stays valid
        # until exp.
        logger.debug("Stateless refresh strategy: logout leaves refresh token valid until expiry")


def build_refresh_strategy(name: str, store: UserStore, codec: TokenCodec, ttl_seconds: int) -> RefreshStrategy:
    """Return the strategy named by configuration."""
    if name == "stateful":
        return StatefulRefresh(store, codec)
    if name == "stateless":
        return StatelessRefresh(store, codec, ttl_seconds)
    raise ValueError(f"Unknown refresh strategy: {name!r}")
