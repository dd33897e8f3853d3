"""
tests/conftest.py -- Shared test fixtures for the catalog API tests.

This module provides:
  - make_product_store(): isolated in-memory product store
  - _make_user_store(): roster seeded with the default admin/manager accounts
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: module-scoped TestClient + admin JWT
  - fresh_client: function-scoped TestClient + admin JWT over an empty catalog
  - product_store: function-scoped empty ProductStore for unit tests

Design: every store gets its own named in-memory SQLite URI
(file:name?mode=memory&cache=shared&uri=true). ProductStore opens memory
URIs on a StaticPool, so TestClient's worker threads all share the one
connection that holds the schema and data.

DEBUG and BCRYPT_ROUNDS must be set before any auth/core import so
get_settings() auto-generates SECRET_KEY and hashing stays fast.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set env before any auth/core import -- get_settings() is cached.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import TokenClaims
from auth.store import UserStore, seed_default_users
from auth.tokens import create_access_token, hash_password
from catalog.store import ProductStore

ADMIN_CLAIMS = TokenClaims(id="1", username="admin", email="admin@example.com", role="admin")

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_product_store() -> ProductStore:
    """Create an isolated named shared-memory product store.

    A random suffix keeps every store separate even within one module.
    """
    url = f"sqlite:///file:test_catalog_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    return ProductStore(db_url=url)


def _make_user_store() -> UserStore:
    store = UserStore()
    seed_default_users(store, hash_password)
    return store


def _patch_lifespan(products: ProductStore, user_store: UserStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test data rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.products = products
        app.state.user_store = user_store
        yield

    return test_lifespan


def _client() -> Generator[tuple[TestClient, str], None, None]:
    products = make_product_store()
    app.router.lifespan_context = _patch_lifespan(products, _make_user_store())
    token = create_access_token(ADMIN_CLAIMS, expire_seconds=3600)
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client, token
    products.close()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, str], None, None]:
    """Yield (client, token) shared by every test in a module.

    The roster holds the seeded admin (admin/admin123) and manager
    (manager/manager123). token is a JWT for the admin account.
    """
    yield from _client()


@pytest.fixture
def fresh_client() -> Generator[tuple[TestClient, str], None, None]:
    """Yield (client, token) over an empty catalog and a freshly seeded roster.

    Use where a test asserts on exact counts or ordering.
    """
    yield from _client()


@pytest.fixture
def product_store() -> Generator[ProductStore, None, None]:
    store = make_product_store()
    yield store
    store.close()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Authorization header for the seeded admin account."""
    return {"Authorization": f"Bearer {create_access_token(ADMIN_CLAIMS, expire_seconds=3600)}"}
