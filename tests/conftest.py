"""
tests/conftest.py -- Shared test fixtures for citygarage.

This module provides:
  - user_store / city_store / hotel_store / cache: isolated in-memory stores per test
  - issuer / auth_service / city_service / hotel_service: services wired to those stores
  - register_user(): helper that registers an account through the service
  - api_client: TestClient over the real FastAPI app with a patched lifespan

Design: API tests use named shared-memory SQLite URIs (not plain :memory:)
because TestClient runs sync route handlers in a thread pool. Plain :memory:
databases are per-connection and would present a blank schema to each worker
thread.

DEBUG and BCRYPT_ROUNDS must be set before any auth/core import so
get_settings() auto-generates SECRET_KEY and hashing stays fast.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app, attach_services
from auth.models import RegisterRequest
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from cache.store import CacheStore
from cities.service import CityService
from cities.store import CityStore
from hotels.service import HotelService
from hotels.store import HotelStore

STRONG_PASSWORD = "Secret123"


# ---------------------------------------------------------------------------
# Unit-level fixtures -- fresh stores for every test
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def city_store() -> Generator[CityStore, None, None]:
    store = CityStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def hotel_store() -> Generator[HotelStore, None, None]:
    store = HotelStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def cache() -> Generator[CacheStore, None, None]:
    store = CacheStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer()


@pytest.fixture
def auth_service(user_store: UserStore, issuer: TokenIssuer) -> AuthService:
    return AuthService(user_store, issuer)


@pytest.fixture
def city_service(city_store: CityStore, cache: CacheStore) -> CityService:
    return CityService(city_store, cache)


@pytest.fixture
def hotel_service(hotel_store: HotelStore, city_store: CityStore, cache: CacheStore) -> HotelService:
    return HotelService(hotel_store, city_store, cache)


def make_register_request(username: str = "ada_l", email: str | None = None, **overrides) -> RegisterRequest:
    fields = {
        "username": username,
        "email": email or f"{username}@example.com",
        "password": STRONG_PASSWORD,
        "confirm_password": STRONG_PASSWORD,
        "first_name": "Ada",
        "last_name": "Lovelace",
        "role": "User",
    }
    fields.update(overrides)
    return RegisterRequest(**fields)


@pytest.fixture
def register_user(auth_service: AuthService):
    """Return a helper that registers an account and returns the AuthResponse."""

    def _register(username: str = "ada_l", **overrides):
        result = auth_service.register(make_register_request(username, **overrides))
        assert result.is_success, result.errors
        return result.data

    return _register


# ---------------------------------------------------------------------------
# API fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, city_store: CityStore, hotel_store: HotelStore, cache: CacheStore):
    """Return a lifespan that wires pre-created test stores into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        attach_services(app, user_store, city_store, hotel_store, cache, TokenIssuer())
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient backed by isolated shared-memory stores."""
    suffix = uuid.uuid4().hex[:8]
    user_store = UserStore(f"sqlite:///file:test_auth_{suffix}?mode=memory&cache=shared&uri=true")
    city_store = CityStore(f"sqlite:///file:test_cities_{suffix}?mode=memory&cache=shared&uri=true")
    hotel_store = HotelStore(f"sqlite:///file:test_hotels_{suffix}?mode=memory&cache=shared&uri=true")
    cache = CacheStore(":memory:")

    app.router.lifespan_context = _patch_lifespan(user_store, city_store, hotel_store, cache)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    cache.close()
    hotel_store.close()
    city_store.close()
    user_store.close()
