"""
tests/conftest.py -- Shared test fixtures for the auth service.

This module provides:
  - _make_test_store(): isolated named shared-memory SQLite store
  - _patch_lifespan(): wires test resources into app.state, bypassing real startup
  - api_client: TestClient plus an admin and a regular user with access tokens
  - store: fresh in-memory UserStore for unit tests
  - fresh rate limit counter per test so throttling never leaks between tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

Environment must be set before any auth/core import: get_settings() is cached
and tokens/passwords read it at module load.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: set before any app import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("JWT_SECRET", "test-access-secret-0123456789abcdef0123456789")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-0123456789abcdef012345678")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_STORAGE_URI", "memory://")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Role, User
from auth.passwords import hash_password
from auth.store import UserStore
from auth.tokens import create_access_token
from cache.store import RateLimitCounter

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "AdminPass123!"
USER_EMAIL = "regular@example.com"
USER_PASSWORD = "UserPass123!"


@dataclass
class ApiContext:
    client: TestClient
    store: UserStore
    admin: User
    admin_token: str
    user: User
    user_token: str

    @staticmethod
    def bearer(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> UserStore:
    """Create an isolated named shared-memory SQLite store.

    A uuid suffix keeps separate test modules (and re-runs in one session)
    from sharing state.
    """
    name = f"test_auth_{db_suffix}_{uuid.uuid4().hex[:8]}"
    return UserStore(db_url=f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(user_store: UserStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.rate_limit_counter = RateLimitCounter("memory://")
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for API integration tests.

    Seeds one admin and one regular user before the client starts and issues
    an access token for each.
    """
    user_store = _make_test_store("api")
    admin = user_store.create_user(
        User(name="Admin", email=ADMIN_EMAIL, password_hash=hash_password(ADMIN_PASSWORD), role=Role.admin.value)
    )
    user = user_store.create_user(User(name="Regular", email=USER_EMAIL, password_hash=hash_password(USER_PASSWORD)))

    app.router.lifespan_context = _patch_lifespan(user_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(
            client=client,
            store=user_store,
            admin=admin,
            admin_token=create_access_token(admin.id),
            user=user,
            user_token=create_access_token(user.id),
        )

    user_store.close()


@pytest.fixture(autouse=True)
def _fresh_rate_limits() -> None:
    """Give every test an empty counter so the auth throttle never carries over."""
    app.state.rate_limit_counter = RateLimitCounter("memory://")


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()
