"""
auth/passwords.py -- Salted adaptive password hashing (bcrypt).

bcrypt is used directly rather than through passlib: passlib's wrap-bug
detection feeds bcrypt a password longer than 72 bytes, which bcrypt 4.x+
rejects with an explicit error.

Every hash() call draws a fresh salt, so hashing the same password twice
yields two different records that both verify. The cost factor is embedded
in the record, so raising rounds later does not invalidate old records.
"""

from __future__ import annotations

import logging

import bcrypt

from core.config import MIN_BCRYPT_ROUNDS

logger = logging.getLogger("hotdeal.auth")

# bcrypt only looks at the first 72 bytes of input. Longer inputs are refused
# instead of being silently truncated.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """bcrypt hash/verify with a configurable cost factor.

    Usage:
        hasher = PasswordHasher(rounds=12)
        record = hasher.hash("pw123456")
        assert hasher.verify("pw123456", record)
    """

    def __init__(self, rounds: int = 12) -> None:
        if rounds < MIN_BCRYPT_ROUNDS:
            raise ValueError(f"bcrypt rounds must be at least {MIN_BCRYPT_ROUNDS}")
        self.rounds = rounds
        self._dummy_hash: str | None = None

    def hash(self, plaintext: str) -> str:
        """Return a bcrypt record for plaintext. Raises ValueError past 72 bytes."""
        encoded = plaintext.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plaintext: str, record: str) -> bool:
        """Return True if plaintext matches record.

        A malformed record or an input bcrypt refuses is a mismatch, not an
        error: the caller only ever needs a yes/no answer.
        """
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), record.encode("utf-8"))
        except ValueError:
            logger.debug("bcrypt refused password verification input")
            return False

    def burn(self, plaintext: str) -> None:
        """Run one verify against a throwaway record and discard the result.

        Called when the account does not exist, so an unknown e-mail costs the
        same bcrypt work as a wrong password and response time does not reveal
        which e-mails are registered. The record is built lazily at the
        configured cost.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("hotdeal_timing_dummy")
        self.verify(plaintext, self._dummy_hash)
