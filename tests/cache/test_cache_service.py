"""Tests for CacheService backends and failure downgrading."""

import pytest

from core.cache import CacheService, MemoryBackend


class TestMemoryBackend:

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self):
        now = [1000.0]
        backend = MemoryBackend(clock=lambda: now[0])

        await backend.setex("item:1", 5, '{"id": 1}')
        assert await backend.get("item:1") == '{"id": 1}'

        now[0] += 5
        assert await backend.get("item:1") is None

    @pytest.mark.asyncio
    async def test_expired_entries_are_swept_on_write(self):
        now = [1000.0]
        backend = MemoryBackend(clock=lambda: now[0], sweep_interval=30)

        for offset in range(100):
            await backend.setex(f"items:10:{offset}", 5, "[]")
        assert len(backend) == 100

        now[0] += 31
        await backend.setex("item:1", 60, "{}")

        assert len(backend) == 1
        assert await backend.get("item:1") == "{}"

    @pytest.mark.asyncio
    async def test_live_entries_survive_sweep(self):
        now = [1000.0]
        backend = MemoryBackend(clock=lambda: now[0], sweep_interval=30)

        await backend.setex("item:1", 5, "short")
        await backend.setex("item:2", 300, "long")
        now[0] += 31
        await backend.setex("item:3", 300, "new")

        assert len(backend) == 2
        assert await backend.get("item:2") == "long"

    @pytest.mark.asyncio
    async def test_delete_matching_only_touches_pattern(self):
        backend = MemoryBackend()
        await backend.setex("items:50:0", 60, "a")
        await backend.setex("items:10:20", 60, "b")
        await backend.setex("item:3", 60, "c")

        deleted = await backend.delete_matching("items:*")

        assert deleted == 2
        assert await backend.get("item:3") == "c"
        assert await backend.get("items:50:0") is None


class TestCacheService:

    @pytest.mark.asyncio
    async def test_set_then_get_returns_decoded_value(self, cache):
        page = {"count": 1, "data": [{"id": 1, "name": "A"}]}
        assert await cache.set("items:50:0", page, ttl=60) is True
        assert await cache.get("items:50:0") == page

    @pytest.mark.asyncio
    async def test_miss_returns_none(self, cache):
        assert await cache.get("item:404") is None

    @pytest.mark.asyncio
    async def test_undecodable_entry_is_a_miss(self, cache):
        await cache.backend.setex("item:1", 60, "{not json")
        assert await cache.get("item:1") is None

    @pytest.mark.asyncio
    async def test_unreachable_backend_degrades_to_noop(self, settings, unreachable_backend):
        service = CacheService(settings)
        service.backend = unreachable_backend

        assert await service.get("item:1") is None
        assert await service.set("item:1", {"id": 1}, ttl=60) is False
        assert await service.delete("item:1") is False
        assert await service.clear_pattern("items:*") == 0
        assert await service.ping() is False
        assert [name for name, _ in unreachable_backend.calls] == [
            "get", "setex", "delete", "delete_matching", "ping"
        ]

    @pytest.mark.asyncio
    async def test_memory_backend_selected_when_redis_disabled(self, cache):
        assert isinstance(cache.backend, MemoryBackend)
        assert cache.is_redis_available() is False


class TestRedisBackend:

    @pytest.mark.asyncio
    async def test_connection_error_becomes_cache_unavailable(self):
        from unittest.mock import AsyncMock, MagicMock
        from redis.exceptions import ConnectionError as RedisConnectionError

        from core.cache import RedisBackend
        from core.exceptions import CacheUnavailable

        client = MagicMock()
        client.get = AsyncMock(side_effect=RedisConnectionError("Connection refused"))
        backend = RedisBackend(client)

        with pytest.raises(CacheUnavailable):
            await backend.get("item:1")

    @pytest.mark.asyncio
    async def test_delete_matching_scans_and_deletes(self):
        from unittest.mock import AsyncMock, MagicMock

        from core.cache import RedisBackend

        async def scan_iter(match, count):
            for key in ["items:50:0", "items:10:0"]:
                yield key

        client = MagicMock()
        client.scan_iter = scan_iter
        client.delete = AsyncMock(return_value=2)
        backend = RedisBackend(client)

        assert await backend.delete_matching("items:*") == 2
        client.delete.assert_awaited_once_with("items:50:0", "items:10:0")
