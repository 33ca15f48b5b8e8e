"""
tests/conftest.py -- Shared test fixtures for authgate tests.

This module provides:
  - hasher: CredentialHasher with minimal Argon2 cost (fast, still Argon2id)
  - token_config / issuer / validator: token components over a fixed test secret
  - store: isolated in-memory UserStore per test
  - api_client: TestClient over the real app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for the API client because TestClient runs `def` route handlers in a thread
pool. Plain :memory: DBs are per-connection and would present a blank schema
to each worker thread. The named URI format
(file:name?mode=memory&cache=shared&uri=true) shares one in-memory instance
across all connections in the same process.

SECRET_KEY and ALLOWED_HOSTS must be set before any api/ import:
api/main.py reads settings at import time and refuses to load without a
secret.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set before any api/ or core/ import so get_settings() succeeds.
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789abcdef-0123456789")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.passwords import CredentialHasher
from auth.store import UserStore
from auth.tokens import TokenConfig, TokenIssuer, TokenValidator

TEST_SECRET = os.environ["SECRET_KEY"]


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> CredentialHasher:
    """Argon2id at the lowest cost argon2-cffi accepts. Same code path, ms per hash."""
    return CredentialHasher(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture
def token_config() -> TokenConfig:
    return TokenConfig(secret_key=TEST_SECRET, ttl_seconds=3600)


@pytest.fixture
def issuer(token_config: TokenConfig) -> TokenIssuer:
    return TokenIssuer(token_config)


@pytest.fixture
def validator(token_config: TokenConfig) -> TokenValidator:
    return TokenValidator(token_config)


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    """Fresh in-memory store, discarded after each test."""
    s = UserStore(f"sqlite:///file:unit_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")
    yield s
    s.close()


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


@dataclass
class ApiContext:
    client: TestClient
    store: UserStore
    issuer: TokenIssuer
    hasher: CredentialHasher


def _patch_lifespan(store: UserStore, hasher: CredentialHasher, config: TokenConfig):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store and cheap hasher into app.state so TestClient routes
    see isolated collaborators rather than the production database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = store
        app.state.hasher = hasher
        app.state.token_issuer = TokenIssuer(config)
        app.state.token_validator = TokenValidator(config)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(hasher: CredentialHasher) -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for HTTP integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers, dependencies and exception handlers.
    One store per test module; tests pick unique usernames.
    """
    store = UserStore(db_url=f"sqlite:///file:test_api_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")
    config = TokenConfig(secret_key=TEST_SECRET, ttl_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(store, hasher, config)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(client=client, store=store, issuer=TokenIssuer(config), hasher=hasher)

    store.close()
