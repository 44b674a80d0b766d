"""
auth/service.py -- AuthCore: login, logout, refresh, and request authentication.

This is the contract the HTTP layer consumes. Every public method either
returns its result or raises one AuthError subclass (auth/errors.py);
there is no partial success.

Request authentication walks these states, each failure terminal:

    token presented
      -> TokenValid       signature + expiry   (InvalidFormat / InvalidSignature / Expired)
      -> AccessGranted    type != "refresh"    (InvalidTokenType)
      -> Authorized       user exists, active  (NotFound / AccountInactive)
      -> AdminAuthorized  auth_level >= ADMIN  (InsufficientPrivilege)

Login timing: an unknown e-mail still costs one bcrypt verify
(PasswordHasher.burn), and both unknown e-mail and wrong password raise the
same CredentialMismatchError. The active check runs only after the password
matched, so account status is never revealed to someone without the password.

AuthCore holds no mutable state of its own. The signing secret arrives in
AuthConfig at construction and is never re-read.
"""

from __future__ import annotations

import logging
from typing import Callable

from auth.errors import (
    AccountInactiveError,
    AlreadyExistsError,
    CredentialMismatchError,
    InsufficientPrivilegeError,
    InvalidTokenTypeError,
    NotFoundError,
)
from auth.models import AuthLevel, Credential, LoginResult, TokenPayload, User
from auth.notify import Notifier, notify_safely
from auth.passwords import PasswordHasher
from auth.refresh import RefreshStrategy, build_refresh_strategy
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.config import AuthConfig

logger = logging.getLogger("hotdeal.auth")


class AuthCore:
    """Orchestrates TokenCodec, PasswordHasher, and the UserStore.

    Usage:
        core = AuthCore(build_auth_config(settings), SqlUserStore(url))
        user = core.register("a@x.com", "pw123456", "nick")
        result = core.login("a@x.com", "pw123456")
        current = core.authenticate(result.access_token)
    """

    def __init__(
        self,
        config: AuthConfig,
        store: UserStore,
        hasher: PasswordHasher | None = None,
        clock: Callable[[], int] | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.hasher = hasher or PasswordHasher(rounds=config.bcrypt_rounds)
        self.codec = TokenCodec(config.secret, clock=clock)
        self.refresh_strategy: RefreshStrategy = build_refresh_strategy(
            config.refresh_strategy, store, self.codec, config.refresh_token_ttl
        )
        self.notifier = notifier

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, email: str, password: str, nickname: str) -> User:
        """Create an active USER-level account.

        Raises AlreadyExistsError("email") or AlreadyExistsError("nickname").
        """
        if self.store.find_by_email(email) is not None:
            raise AlreadyExistsError("email")
        if self.store.find_by_nickname(nickname) is not None:
            raise AlreadyExistsError("nickname", "Nickname already taken.")

        user = self.store.create(
            User(
                email=email,
                nickname=nickname,
                hashed_password=self.hasher.hash(password),
                auth_level=AuthLevel.USER,
                is_active=True,
            )
        )
        logger.info("User registered: id=%s", user.id)
        notify_safely(self.notifier, user.email, "user_registered", {"nickname": user.nickname})
        return user

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> LoginResult:
        """Verify the credential and issue an access token plus a refresh artifact."""
        credential = Credential(email=email, password=password)
        user = self.store.find_by_email(credential.email)
        if user is None:
            self.hasher.burn(credential.password)
            logger.info("Login rejected: unknown email")
            raise CredentialMismatchError()
        if not self.hasher.verify(credential.password, user.hashed_password):
            logger.info("Login rejected: bad password for user id=%s", user.id)
            raise CredentialMismatchError()
        if not user.is_active:
            raise AccountInactiveError()

        access_token = self.issue_access_token(user)
        refresh_token = self.refresh_strategy.issue(user)
        logger.info("Login succeeded: id=%s", user.id)
        return LoginResult(access_token=access_token, user_id=user.id, refresh_token=refresh_token)

    def logout(self, user_id: str) -> None:
        """Drop the user's refresh artifact. Idempotent; a no-op for stateless refresh."""
        self.refresh_strategy.revoke(user_id)
        logger.info("Logout: id=%s", user_id)

    def refresh(self, artifact: str) -> LoginResult:
        """Redeem a refresh artifact for a new access token.

        Under the stateful strategy the artifact is single-use: a successful
        refresh rotates it, and the old value no longer redeems. Of two
        concurrent refreshes with the same artifact only one succeeds.
        An inactive account still burns the artifact before being refused.
        """
        user, new_artifact = self.refresh_strategy.exchange(artifact)
        if not user.is_active:
            raise AccountInactiveError()
        access_token = self.issue_access_token(user)
        logger.info("Token refreshed: id=%s", user.id)
        return LoginResult(access_token=access_token, user_id=user.id, refresh_token=new_artifact)

    def issue_access_token(self, user: User) -> str:
        """Sign a fresh access token for user. Never carries type=refresh."""
        payload = TokenPayload(user_id=user.id, email=user.email, auth_level=user.auth_level)
        return self.codec.issue(payload.to_claims(), self.config.access_token_ttl)

    # ------------------------------------------------------------------
    # Request authentication
    # ------------------------------------------------------------------

    def verify_access(self, token: str) -> TokenPayload:
        """Verify signature and expiry, then refuse refresh tokens."""
        payload = TokenPayload.from_claims(self.codec.verify(token))
        if payload.is_refresh:
            raise InvalidTokenTypeError()
        return payload

    def authenticate(self, token: str) -> User:
        """Resolve a bearer token to an active User."""
        payload = self.verify_access(token)
        user = self.store.find_by_id(payload.user_id)
        if user is None:
            raise NotFoundError("User not found.")
        if not user.is_active:
            raise AccountInactiveError()
        return user

    def authorize_admin(self, user: User) -> User:
        """Require ADMIN rank from the stored record, not from token claims."""
        if user.auth_level < AuthLevel.ADMIN:
            raise InsufficientPrivilegeError()
        return user

    # ------------------------------------------------------------------
    # Account queries
    # ------------------------------------------------------------------

    def get_me(self, user_id: str) -> User:
        user = self.store.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found.")
        return user

    def set_active_status(self, user_id: str, is_active: bool) -> User:
        """Activate or deactivate an account. Admin operation."""
        if not self.store.update_active_status(user_id, is_active):
            raise NotFoundError("User not found.")
        logger.info("Account id=%s is_active=%s", user_id, is_active)
        return self.get_me(user_id)
