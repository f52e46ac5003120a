"""
tests/conftest.py -- Shared test fixtures for Products CMS integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for users + products
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_app / web_app: one TestClient per test module with a seeded admin
  - api_client / web_client: per-test views of those with an empty cookie jar
  - sign_in: puts a session cookie into a client's jar

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

JWT_SECRET and BCRYPT_ROUNDS must be set before any auth/core import:
the token service reads settings at import time and refuses to load without
a secret. Four bcrypt rounds keep the suite fast.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: set before importing anything from auth/ or core/.
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-at-least-32-characters-long")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import issue_token
from catalog.store import ProductStore
from core.config import get_settings

COOKIE_NAME = get_settings().cookie_name

ADMIN_NAME = "Test Admin"
ADMIN_PASSWORD = "adminpass123"

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def memory_db_url(name: str) -> str:
    return f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true"


def _make_test_stores(db_suffix: str) -> tuple[UserStore, ProductStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. 'api', 'web').
    """
    user_store = UserStore(db_url=memory_db_url(f"test_users_{db_suffix}"))
    product_store = ProductStore(db_url=memory_db_url(f"test_products_{db_suffix}"))
    return user_store, product_store


def _patch_lifespan(user_store: UserStore, product_store: ProductStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the project database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.product_store = product_store
        yield

    return test_lifespan


@dataclass
class AppHarness:
    client: TestClient
    user_store: UserStore
    product_store: ProductStore
    admin: User
    token: str


def _start_app(db_suffix: str, admin_email: str, **client_kwargs) -> Generator[AppHarness, None, None]:
    user_store, product_store = _make_test_stores(db_suffix)

    # Create the admin user before starting the test client
    admin = user_store.create(ADMIN_NAME, admin_email, ADMIN_PASSWORD)
    token = issue_token(admin.claims(), expire_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(user_store, product_store)

    with TestClient(app, raise_server_exceptions=True, **client_kwargs) as client:
        yield AppHarness(client, user_store, product_store, admin, token)

    product_store.close()
    user_store.close()


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_app(request) -> Generator[AppHarness, None, None]:
    """Real FastAPI app with a patched lifespan and isolated in-memory stores."""
    suffix = f"api_{request.module.__name__}"
    yield from _start_app(suffix, "admin@example.com")


@pytest.fixture(scope="module")
def web_app(request) -> Generator[AppHarness, None, None]:
    """Same as api_app but with follow_redirects=False.

    Web route tests assert on redirect *locations* (e.g. 302 to
    /auth/login), which are invisible once the client follows the redirect.
    """
    suffix = f"web_{request.module.__name__}"
    yield from _start_app(suffix, "webadmin@example.com", follow_redirects=False)


@pytest.fixture
def api_client(api_app: AppHarness) -> Generator[AppHarness, None, None]:
    """api_app with a cookie jar emptied before and after the test.

    The TestClient keeps cookies from Set-Cookie headers, so without this
    a session created in one test would leak into the next.
    """
    api_app.client.cookies.clear()
    yield api_app
    api_app.client.cookies.clear()


@pytest.fixture
def web_client(web_app: AppHarness) -> Generator[AppHarness, None, None]:
    web_app.client.cookies.clear()
    yield web_app
    web_app.client.cookies.clear()


@pytest.fixture
def sign_in() -> Callable[[TestClient, str], None]:
    """Replace whatever session the client holds with the given token."""

    def _sign_in(client: TestClient, token: str) -> None:
        client.cookies.clear()
        client.cookies.set(COOKIE_NAME, token)

    return _sign_in
