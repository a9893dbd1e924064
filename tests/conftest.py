"""Shared fixtures: SQLite file database, in-memory cache, and an app client."""

import os

import pytest
import pytest_asyncio

# Settings() is constructed at import of main; these must exist first.
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-at-least-32-chars")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test-bootstrap.db")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from core.cache import CacheService  # noqa: E402
from core.config import Settings  # noqa: E402
from core.database import Database  # noqa: E402
from core.exceptions import CacheUnavailable  # noqa: E402
from services.items import ItemService  # noqa: E402


class UnreachableBackend:
    """Cache backend whose every call fails like a dropped Redis connection."""

    def __init__(self):
        self.calls = []

    async def _fail(self, name, *args):
        self.calls.append((name, args))
        raise CacheUnavailable("Connection refused")

    async def get(self, key):
        return await self._fail("get", key)

    async def setex(self, key, ttl, value):
        return await self._fail("setex", key, ttl, value)

    async def delete(self, key):
        return await self._fail("delete", key)

    async def delete_matching(self, pattern):
        return await self._fail("delete_matching", pattern)

    async def ping(self):
        return await self._fail("ping")

    async def close(self):
        pass


@pytest.fixture
def settings(tmp_path):
    return Settings(
        jwt_secret_key="test-secret-key-that-is-at-least-32-chars",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'items.db'}",
        redis_enabled=False,
        bcrypt_rounds=4,
    )


@pytest_asyncio.fixture
async def database(settings):
    db = Database(settings)
    await db.startup()
    yield db
    await db.shutdown()


@pytest_asyncio.fixture
async def cache(settings):
    service = CacheService(settings)
    await service.startup()
    yield service
    await service.shutdown()


@pytest.fixture
def item_service(database, cache, settings):
    return ItemService(database=database, cache=cache, settings=settings)


@pytest.fixture
def client(tmp_path, monkeypatch):
    """TestClient over a fresh database; container singletons rebuilt per test."""
    from fastapi.testclient import TestClient

    from core.container import container
    from main import app

    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
    container.reset_singletons()

    with TestClient(app) as test_client:
        yield test_client

    container.reset_singletons()


@pytest.fixture
def unreachable_backend():
    return UnreachableBackend()
