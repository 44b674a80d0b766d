"""
tests/conftest.py -- Shared test fixtures for the HotDeal auth tests.

This module provides:
  - InMemoryUserStore: dict-backed UserStore honouring the SqlUserStore contract
  - FakeClock: injectable epoch-seconds clock, so expiry tests never sleep
  - core / stateless_core: AuthCore over InMemoryUserStore with bcrypt at cost 10
  - _make_test_store() / _patch_lifespan(): isolated SQL store wired into app.state
  - api_client: TestClient over https with an admin account already created

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

The client base URL is https because the refresh cookie is Secure: the
cookie jar would otherwise store it but never send it back.
"""

from __future__ import annotations

import dataclasses
import os
import threading
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# Set DEBUG before any core import so a stray Settings() without JWT_SECRET
# generates a dev key instead of raising.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.errors import AlreadyExistsError, StorageError
from auth.models import AuthLevel, User
from auth.notify import LogNotifier
from auth.passwords import PasswordHasher
from auth.service import AuthCore
from auth.store import SqlUserStore
from core.config import AuthConfig, Settings

TEST_SECRET = "test-secret-0123456789abcdef0123456789abcdef"
TEST_ROUNDS = 10
START_TIME = 1_700_000_000

ADMIN_EMAIL = "admin@hotdeal.test"
ADMIN_PASSWORD = "adminpass123"


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeClock:
    """Callable clock returning integer epoch seconds. advance() moves it forward."""

    def __init__(self, now: int = START_TIME) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class InMemoryUserStore:
    """UserStore kept in dicts. Returns copies so callers cannot mutate stored rows.

    Set broken = True to make every call raise StorageError.
    """

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._refresh: dict[str, str] = {}
        self.broken = False
        self._lock = threading.Lock()

    def _check(self) -> None:
        if self.broken:
            raise StorageError()

    def _copy(self, user: User | None) -> User | None:
        return dataclasses.replace(user) if user is not None else None

    def find_by_email(self, email: str) -> User | None:
        self._check()
        return self._copy(next((u for u in self._users.values() if u.email == email), None))

    def find_by_id(self, user_id: str) -> User | None:
        self._check()
        return self._copy(self._users.get(user_id))

    def find_by_nickname(self, nickname: str) -> User | None:
        self._check()
        return self._copy(next((u for u in self._users.values() if u.nickname == nickname), None))

    def find_by_refresh_token(self, token_digest: str) -> User | None:
        self._check()
        with self._lock:
            slots = list(self._refresh.items())
        for user_id, digest in slots:
            if digest == token_digest:
                return self._copy(self._users.get(user_id))
        return None

    def create(self, user: User) -> User:
        self._check()
        if any(u.email == user.email for u in self._users.values()):
            raise AlreadyExistsError("email")
        if any(u.nickname == user.nickname for u in self._users.values()):
            raise AlreadyExistsError("nickname")
        stored = dataclasses.replace(user, id=user.id or str(uuid.uuid4()))
        self._users[stored.id] = stored
        return self._copy(stored)

    def update_active_status(self, user_id: str, is_active: bool) -> bool:
        self._check()
        if user_id not in self._users:
            return False
        self._users[user_id].is_active = is_active
        return True

    def update_refresh_token(self, user_id: str, token_digest: str | None) -> None:
        self._check()
        with self._lock:
            if token_digest is None:
                self._refresh.pop(user_id, None)
            elif user_id in self._users:
                self._refresh[user_id] = token_digest

    def rotate_refresh_token(self, user_id: str, old_digest: str, new_digest: str) -> bool:
        self._check()
        with self._lock:
            if self._refresh.get(user_id) != old_digest:
                return False
            self._refresh[user_id] = new_digest
            return True

    def refresh_digest(self, user_id: str) -> str | None:
        """Test-only view of the stored refresh slot."""
        return self._refresh.get(user_id)


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_ROUNDS)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def auth_config() -> AuthConfig:
    return AuthConfig(secret=TEST_SECRET, bcrypt_rounds=TEST_ROUNDS)


@pytest.fixture
def core(auth_config, memory_store, hasher, clock) -> AuthCore:
    """AuthCore with the stateful refresh strategy."""
    return AuthCore(auth_config, memory_store, hasher=hasher, clock=clock)


@pytest.fixture
def stateless_core(memory_store, hasher, clock) -> AuthCore:
    config = AuthConfig(secret=TEST_SECRET, bcrypt_rounds=TEST_ROUNDS, refresh_strategy="stateless")
    return AuthCore(config, memory_store, hasher=hasher, clock=clock)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> SqlUserStore:
    """Create an isolated named shared-memory SQLite store.

    Args:
        db_suffix: Unique string appended to the DB name so tests never share rows.
    """
    return SqlUserStore(f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(settings: Settings, core: AuthCore):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-built AuthCore and Settings into app.state so routes use the
    isolated test store rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.user_store = core.store
        app.state.auth_core = core
        yield

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[tuple[TestClient, AuthCore], None, None]:
    """Yield (client, core) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan, so tests
    hit real route handlers, dependencies, and exception handlers against a
    fresh in-memory database. An admin account (ADMIN_EMAIL / ADMIN_PASSWORD)
    exists before the first request. The login rate limiter is reset so
    tests do not trip each other's counters.
    """
    store = _make_test_store(uuid.uuid4().hex)
    original_lifespan = app.router.lifespan_context
    try:
        settings = Settings(jwt_secret=TEST_SECRET, bcrypt_rounds=TEST_ROUNDS)
        config = AuthConfig(secret=TEST_SECRET, bcrypt_rounds=TEST_ROUNDS)
        core = AuthCore(config, store, notifier=LogNotifier())

        hasher = PasswordHasher(rounds=TEST_ROUNDS)
        store.create(
            User(
                email=ADMIN_EMAIL,
                nickname="admin",
                hashed_password=hasher.hash(ADMIN_PASSWORD),
                auth_level=AuthLevel.ADMIN,
            )
        )

        limiter.reset()
        app.router.lifespan_context = _patch_lifespan(settings, core)

        with TestClient(app, base_url="https://testserver", raise_server_exceptions=True) as client:
            yield client, core
    finally:
        app.router.lifespan_context = original_lifespan
        store.close()
