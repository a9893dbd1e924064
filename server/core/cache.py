"""Cache service with Redis (production) or in-memory (development) backend.

Every call goes through CacheService, which treats the cache as an
optimization: a backend failure is logged at warning level and downgraded to
a miss or a no-op, never raised to the caller.
"""

import json
import time
from fnmatch import fnmatchcase
from typing import Any, Callable, Dict, List, Optional, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError

from core.config import Settings
from core.exceptions import CacheUnavailable
from core.logging import get_logger, log_cache_operation

logger = get_logger(__name__)

# Keys deleted per DEL call during pattern invalidation
DELETE_BATCH_SIZE = 500

# Seconds between sweeps of expired in-memory entries
MEMORY_SWEEP_INTERVAL = 30


class MemoryBackend:
    """Process-local key/value map with per-key expiry.

    Only suitable for a single worker process: invalidations are not seen by
    other processes.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic,
                 sweep_interval: float = MEMORY_SWEEP_INTERVAL):
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval

    def _sweep(self, now: float) -> None:
        """Drop every expired entry, at most once per sweep interval."""
        if now < self._next_sweep:
            return
        expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        self._next_sweep = now + self._sweep_interval

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return value

    async def setex(self, key: str, ttl: int, value: str) -> None:
        now = self._clock()
        self._sweep(now)
        self._entries[key] = (value, now + ttl)

    def __len__(self) -> int:
        return len(self._entries)

    async def delete(self, key: str) -> int:
        return 1 if self._entries.pop(key, None) is not None else 0

    async def delete_matching(self, pattern: str) -> int:
        keys = [k for k in self._entries if fnmatchcase(k, pattern)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._entries.clear()


class RedisBackend:
    """redis.asyncio client wrapper that reports failures as CacheUnavailable."""

    def __init__(self, client: "redis.Redis"):
        self.client = client

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(key)
        except RedisError as e:
            raise CacheUnavailable(str(e)) from e

    async def setex(self, key: str, ttl: int, value: str) -> None:
        try:
            await self.client.setex(key, ttl, value)
        except RedisError as e:
            raise CacheUnavailable(str(e)) from e

    async def delete(self, key: str) -> int:
        try:
            return await self.client.delete(key)
        except RedisError as e:
            raise CacheUnavailable(str(e)) from e

    async def delete_matching(self, pattern: str) -> int:
        """Delete keys matching a glob pattern using SCAN (non-blocking)."""
        deleted = 0
        batch: List[str] = []
        try:
            async for key in self.client.scan_iter(match=pattern, count=DELETE_BATCH_SIZE):
                batch.append(key)
                if len(batch) >= DELETE_BATCH_SIZE:
                    deleted += await self.client.delete(*batch)
                    batch = []
            if batch:
                deleted += await self.client.delete(*batch)
        except RedisError as e:
            raise CacheUnavailable(str(e)) from e
        return deleted

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            raise CacheUnavailable(str(e)) from e

    async def close(self) -> None:
        await self.client.aclose()


class CacheService:
    """Async cache service with Redis or in-memory backend.

    Backend selection:
    - Redis: When REDIS_ENABLED=true and REDIS_URL is set (production)
    - Memory: Otherwise (development, single process)
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.backend = None
        self.use_redis = settings.redis_enabled and bool(settings.redis_url)

    async def startup(self):
        """Initialize cache connection."""
        if self.use_redis:
            client = redis.from_url(
                self.settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=5,
                socket_connect_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30
            )
            self.backend = RedisBackend(client)

            # The client reconnects on demand, so an unreachable server at
            # startup only degrades reads to misses.
            if await self.ping():
                logger.info("Redis cache initialized", url=self.settings.redis_url)
            else:
                logger.warning("Redis unreachable at startup, serving from database",
                               url=self.settings.redis_url)
        else:
            self.backend = MemoryBackend()
            logger.info("Using in-memory cache",
                        redis_enabled=self.settings.redis_enabled)

    async def shutdown(self):
        """Close cache connections."""
        if self.backend is not None:
            await self.backend.close()
            logger.info("Cache connections closed")

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache. Returns None on miss or backend failure."""
        try:
            value = await self.backend.get(key)
        except CacheUnavailable as e:
            logger.warning("Cache get failed", key=key, error=str(e))
            return None

        if value is None:
            log_cache_operation(logger, "get", key, hit=False)
            return None

        try:
            decoded = json.loads(value)
        except ValueError as e:
            logger.warning("Cache entry not decodable", key=key, error=str(e))
            return None

        log_cache_operation(logger, "get", key, hit=True)
        return decoded

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        """Set value in cache with TTL in seconds."""
        serialized = json.dumps(value, default=str)
        try:
            await self.backend.setex(key, ttl, serialized)
        except CacheUnavailable as e:
            logger.warning("Cache set failed", key=key, error=str(e))
            return False

        log_cache_operation(logger, "set", key, ttl=ttl)
        return True

    async def delete(self, key: str) -> bool:
        """Delete value from cache."""
        try:
            deleted = await self.backend.delete(key)
        except CacheUnavailable as e:
            logger.warning("Cache delete failed", key=key, error=str(e))
            return False

        log_cache_operation(logger, "delete", key, deleted=bool(deleted))
        return bool(deleted)

    async def clear_pattern(self, pattern: str) -> int:
        """Clear keys matching pattern."""
        try:
            deleted = await self.backend.delete_matching(pattern)
        except CacheUnavailable as e:
            logger.warning("Cache clear pattern failed", pattern=pattern, error=str(e))
            return 0

        log_cache_operation(logger, "clear_pattern", pattern, deleted=deleted)
        return deleted

    async def ping(self) -> bool:
        """Check cache connectivity."""
        try:
            return await self.backend.ping()
        except CacheUnavailable as e:
            logger.warning("Cache ping failed", error=str(e))
            return False

    def is_redis_available(self) -> bool:
        """Check if the Redis backend is configured."""
        return isinstance(self.backend, RedisBackend)
