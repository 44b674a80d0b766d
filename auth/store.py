"""
auth/store.py -- User persistence: the UserStore protocol and its SQLAlchemy Core implementation.

Pattern: Repository + Data Mapper. SqlUserStore is the repository;
_row_to_user is the mapper. AuthCore and route code never touch SQL.

Contract every UserStore honours:
  - Lookups return None for an absent row, never raise.
  - create() raises AlreadyExistsError on a duplicate email or nickname.
  - Any transport/driver failure surfaces as StorageError. Nothing is retried.
  - Every mutation is a single-row UPDATE/INSERT; no multi-row transactions.

The refresh_token column holds the keyed digest of the user's current
refresh artifact (see auth/refresh.py), never the raw value. One column per
user means at most one live artifact: writing a new digest replaces the old.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import AlreadyExistsError, StorageError
from auth.models import AuthLevel, User

logger = logging.getLogger("hotdeal.auth")

# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class UserStore(Protocol):
    """Interface for user and refresh-slot persistence."""

    def find_by_email(self, email: str) -> User | None: ...

    def find_by_id(self, user_id: str) -> User | None: ...

    def find_by_nickname(self, nickname: str) -> User | None: ...

    def find_by_refresh_token(self, token_digest: str) -> User | None: ...

    def create(self, user: User) -> User: ...

    def update_active_status(self, user_id: str, is_active: bool) -> bool: ...

    def update_refresh_token(self, user_id: str, token_digest: str | None) -> None: ...

    def rotate_refresh_token(self, user_id: str, old_digest: str, new_digest: str) -> bool: ...


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("nickname", String(50), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("auth_level", Integer, nullable=False, server_default=str(int(AuthLevel.USER))),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("refresh_token", String(64), unique=True),  # keyed digest, NULL when logged out
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block behind the refresh-slot writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SqlUserStore:
    """UserStore backed by SQLAlchemy Core.

    Usage:
        store = SqlUserStore("sqlite:///hotdeal_auth.db")
        user = store.create(User(email="a@x.com", nickname="nick", hashed_password=record))
        store.find_by_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _find_one(self, clause) -> User | None:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(clause)).fetchone()
        except SQLAlchemyError as exc:
            logger.error("User lookup failed: %s", exc.__class__.__name__)
            raise StorageError() from exc
        return _row_to_user(row) if row is not None else None

    def find_by_email(self, email: str) -> User | None:
        """Exact, case-sensitive match on email."""
        return self._find_one(_users.c.email == email)

    def find_by_id(self, user_id: str) -> User | None:
        return self._find_one(_users.c.id == user_id)

    def find_by_nickname(self, nickname: str) -> User | None:
        return self._find_one(_users.c.nickname == nickname)

    def find_by_refresh_token(self, token_digest: str) -> User | None:
        """Look up the user whose refresh slot holds token_digest. O(1) via UNIQUE index."""
        return self._find_one(_users.c.refresh_token == token_digest)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, user: User) -> User:
        """Insert a new user and return it with id and timestamps filled in.

        The UNIQUE constraints are the last line of defence against two
        concurrent registrations for the same email or nickname; the loser
        gets AlreadyExistsError.
        """
        now = _now_iso()
        user_id = user.id or str(uuid.uuid4())
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=user_id,
                        email=user.email,
                        nickname=user.nickname,
                        hashed_password=user.hashed_password,
                        auth_level=int(user.auth_level),
                        is_active=1 if user.is_active else 0,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            field = "nickname" if "nickname" in str(exc.orig).lower() else "email"
            raise AlreadyExistsError(field) from exc
        except SQLAlchemyError as exc:
            logger.error("User insert failed: %s", exc.__class__.__name__)
            raise StorageError() from exc
        return User(
            id=user_id,
            email=user.email,
            nickname=user.nickname,
            hashed_password=user.hashed_password,
            auth_level=user.auth_level,
            is_active=user.is_active,
            created_at=now,
            updated_at=now,
        )

    def _update(self, user_id: str, *conditions, **fields) -> bool:
        fields["updated_at"] = _now_iso()
        stmt = _users.update().where(_users.c.id == user_id, *conditions).values(**fields)
        try:
            with self.engine.connect() as conn:
                result = conn.execute(stmt)
                conn.commit()
        except SQLAlchemyError as exc:
            logger.error("User update failed: %s", exc.__class__.__name__)
            raise StorageError() from exc
        return result.rowcount > 0

    def update_active_status(self, user_id: str, is_active: bool) -> bool:
        """Set is_active. Returns False if user_id was not found."""
        return self._update(user_id, is_active=1 if is_active else 0)

    def update_refresh_token(self, user_id: str, token_digest: str | None) -> None:
        """Overwrite the user's refresh slot. None clears it (idempotent)."""
        self._update(user_id, refresh_token=token_digest)

    def rotate_refresh_token(self, user_id: str, old_digest: str, new_digest: str) -> bool:
        """Swap the refresh slot from old_digest to new_digest in one UPDATE.

        Returns False when the slot no longer holds old_digest, i.e. another
        refresh or a logout got there first.
        """
        return self._update(user_id, _users.c.refresh_token == old_digest, refresh_token=new_digest)

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    try:
        auth_level = AuthLevel(row.auth_level)
    except ValueError as exc:
        logger.error("User %s has unknown auth_level %r", row.id, row.auth_level)
        raise StorageError() from exc
    return User(
        id=row.id,
        email=row.email,
        nickname=row.nickname,
        hashed_password=row.hashed_password,
        auth_level=auth_level,
        is_active=bool(row.is_active),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
