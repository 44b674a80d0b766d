"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads happen here. No module should call os.getenv()
or os.environ.get() directly.

Design:
  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET). Type coercion and validation are built in.

  No module-level singleton: the API lifespan builds Settings() exactly once,
      resolves secrets through a SecretProvider, and hands the resulting frozen
      AuthConfig to AuthCore. Nothing reads configuration at call time.

  @model_validator(mode="after"): dev mode (DEBUG=true) generates a JWT
      secret with a warning; production mode refuses to start without one.

Security notes:
  JWT_SECRET shorter than 32 chars is rejected outright. HMAC-SHA256 token
  signing and refresh-artifact digests both rely on key entropy.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Protocol

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("hotdeal.config")

ACCESS_TOKEN_TTL = 3600
REFRESH_TOKEN_TTL = 604800
MIN_SECRET_LENGTH = 32
MIN_BCRYPT_ROUNDS = 10

RefreshStrategyName = Literal["stateful", "stateless"]

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'hotdeal_auth.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file (as long as DEBUG=true or
    JWT_SECRET is set).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    jwt_secret: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    access_token_ttl: int = Field(default=ACCESS_TOKEN_TTL, gt=0)
    refresh_token_ttl: int = Field(default=REFRESH_TOKEN_TTL, gt=0)
    refresh_strategy: RefreshStrategyName = "stateful"

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    bcrypt_rounds: int = Field(default=12, ge=MIN_BCRYPT_ROUNDS, le=31)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    secure_cookies: bool = True

    @model_validator(mode="after")
    def validate_jwt_secret(self) -> "Settings":
        """Enforce JWT_SECRET policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens will not survive a restart.

        Production mode: refuse to start if JWT_SECRET is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.jwt_secret:
            if self.debug:
                self.jwt_secret = secrets.token_hex(32)
                logger.warning("Using auto-generated JWT_SECRET. Tokens will not persist across restarts.")
            else:
                raise ValueError(
                    "JWT_SECRET is required in production mode. "
                    "Set JWT_SECRET in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.jwt_secret) < MIN_SECRET_LENGTH:
            raise ValueError(f"JWT_SECRET must be at least {MIN_SECRET_LENGTH} characters.")
        return self


# ---------------------------------------------------------------------------
# Secret resolution
# ---------------------------------------------------------------------------


class SecretProvider(Protocol):
    """Supplies named secrets (JWT_SECRET, DATABASE_URL) once at startup."""

    def get(self, name: str) -> str: ...


class SettingsSecretProvider:
    """SecretProvider backed by a loaded Settings instance."""

    _NAMES = {"JWT_SECRET": "jwt_secret", "DATABASE_URL": "database_url"}

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def get(self, name: str) -> str:
        try:
            attr = self._NAMES[name]
        except KeyError:
            raise KeyError(f"Unknown secret name: {name!r}") from None
        return getattr(self._settings, attr)


@dataclass(frozen=True)
class AuthConfig:
    """Immutable auth configuration injected into AuthCore.

    secret is the HMAC key for access tokens, stateless refresh tokens, and
    stateful refresh-artifact digests. It is never rotated at runtime.
    """

    secret: str
    access_token_ttl: int = ACCESS_TOKEN_TTL
    refresh_token_ttl: int = REFRESH_TOKEN_TTL
    refresh_strategy: RefreshStrategyName = "stateful"
    bcrypt_rounds: int = 12

    def __post_init__(self) -> None:
        if len(self.secret) < MIN_SECRET_LENGTH:
            raise ValueError(f"secret must be at least {MIN_SECRET_LENGTH} characters.")
        if self.bcrypt_rounds < MIN_BCRYPT_ROUNDS:
            raise ValueError(f"bcrypt_rounds must be at least {MIN_BCRYPT_ROUNDS}.")
        if self.refresh_strategy not in ("stateful", "stateless"):
            raise ValueError(f"Unknown refresh strategy: {self.refresh_strategy!r}")


def build_auth_config(settings: Settings, secrets_provider: SecretProvider | None = None) -> AuthConfig:
    """Resolve the signing secret once and freeze it into an AuthConfig.

    secrets_provider defaults to the settings themselves. Pass a different
    provider (vault client, mounted file) to source JWT_SECRET elsewhere.
    """
    provider = secrets_provider or SettingsSecretProvider(settings)
    return AuthConfig(
        secret=provider.get("JWT_SECRET"),
        access_token_ttl=settings.access_token_ttl,
        refresh_token_ttl=settings.refresh_token_ttl,
        refresh_strategy=settings.refresh_strategy,
        bcrypt_rounds=settings.bcrypt_rounds,
    )
