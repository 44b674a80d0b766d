"""
auth/errors.py -- Classified failures raised by the auth core.

Every rejection the core can produce has its own exception type. The route
layer maps each one to a transport response (see api/main.py); nothing in
auth/ knows about HTTP status codes.

code is a stable machine-readable identifier that ends up in the JSON error
envelope. message is safe to show to clients: it never echoes a token,
password, or stored hash.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all classified auth failures."""

    code = "auth_error"
    message = "Authentication failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message is not None:
            self.message = message


# Token failures -------------------------------------------------------------


class InvalidFormatError(AuthError):
    code = "invalid_format"
    message = "Malformed token."


class InvalidSignatureError(AuthError):
    code = "invalid_signature"
    message = "Invalid token signature."


class ExpiredTokenError(AuthError):
    code = "token_expired"
    message = "Token has expired."


class InvalidTokenTypeError(AuthError):
    code = "invalid_token_type"
    message = "Invalid token type."


# Account failures -----------------------------------------------------------


class CredentialMismatchError(AuthError):
    code = "bad_credentials"
    message = "Invalid email or password."


class AccountInactiveError(AuthError):
    code = "account_inactive"
    message = "User account is not active."


class InsufficientPrivilegeError(AuthError):
    code = "forbidden"
    message = "Admin privileges required."


class NotFoundError(AuthError):
    code = "not_found"
    message = "Not found."


class AlreadyExistsError(AuthError):
    """Duplicate unique field on registration. field is "email" or "nickname"."""

    code = "conflict"
    message = "Already exists."

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(message or f"{field.capitalize()} already registered.")


# Infrastructure -------------------------------------------------------------


class StorageError(AuthError):
    """The user store could not complete a round trip. Never retried internally."""

    code = "storage_unavailable"
    message = "User store unavailable."
