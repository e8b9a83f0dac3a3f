"""
Pytest configuration and fixtures for Supacortex tests.

Route and service tests run against in-memory storage. Tests that need
PostgreSQL use the `pg_storage` fixture and are skipped without TEST_DATABASE_URL.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta

# Set test environment variables before importing config
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only")
os.environ.setdefault("STORAGE_BACKEND", "memory")

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from backend.auth import create_jwt  # noqa: E402
from backend.deps import build_device_auth  # noqa: E402
from backend.main import create_app  # noqa: E402
from backend.repos import memory_storage  # noqa: E402


class FrozenClock:
    """Clock that only moves when a test tells it to."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 10, 19, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def storage():
    return memory_storage()


@pytest.fixture
def device_auth(storage, clock):
    """DeviceAuthService wired exactly as the app wires it."""
    return build_device_auth(storage, clock)


@pytest.fixture
def app(storage, clock):
    return create_app(storage=storage, clock=clock)


@pytest_asyncio.fixture
async def async_client(app):
    """Async HTTP client against the ASGI app."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest_asyncio.fixture
async def test_user(storage):
    return await storage.users.create("test-user@example.com", "Test User")


@pytest_asyncio.fixture
async def second_user(storage):
    return await storage.users.create("second-user@example.com", "Second User")


@pytest.fixture
def session_cookie(test_user):
    return {"session": create_jwt(test_user.id)}
