"""Cache-aside item service.

Reads check the cache first and fall back to the database on a miss,
populating the cache with a TTL. Writes go to the database and then
invalidate every cache entry that could return a stale view of the item
before returning. The cache is an optimization only: CacheService already
downgrades cache failures to misses, so a write is acknowledged even when
invalidation could not reach the cache and stale entries age out by TTL.

Key schema:
    items:{limit}:{offset}  -> {"count": int, "data": [item, ...]}   (listing TTL)
    item:{id}               -> item                                   (point TTL)
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from core.cache import CacheService
from core.config import Settings
from core.database import Database
from core.exceptions import NotFoundError, ValidationError
from core.logging import get_logger, log_execution_time
from models.database import Item

logger = get_logger(__name__)

SOURCE_CACHE = "cache"
SOURCE_DATABASE = "database"

LIST_KEY_PATTERN = "items:*"

NAME_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 1000

# OFFSET is a signed 64-bit integer in both SQLite and PostgreSQL
MAX_OFFSET = 2 ** 63 - 1
# Item ids are a PostgreSQL SERIAL (signed 32-bit)
MAX_ITEM_ID = 2 ** 31 - 1


def list_cache_key(limit: int, offset: int) -> str:
    return f"items:{limit}:{offset}"


def item_cache_key(item_id: int) -> str:
    return f"item:{item_id}"


def serialize_item(item: Item) -> Dict[str, Any]:
    """JSON-ready snapshot of an item, identical to what is cached."""
    return item.model_dump(mode="json")


@dataclass
class CachedResult:
    """Read result tagged with the layer that answered it."""
    source: str
    data: Any


class ItemService:
    """Serves item listings and lookups through the cache, writes through the database."""

    def __init__(self, database: Database, cache: CacheService, settings: Settings):
        self.database = database
        self.cache = cache
        self.settings = settings

    # ============================================================================
    # Input normalization
    # ============================================================================

    def normalize_page(self, limit: Optional[int], offset: Optional[int]) -> Tuple[int, int]:
        """Clamp listing parameters: limit to [1, max] (default when unset), offset to [0, MAX_OFFSET]."""
        if not limit or limit < 1:
            limit = self.settings.items_default_limit
        limit = min(limit, self.settings.items_max_limit)
        if not offset or offset < 0:
            offset = 0
        offset = min(offset, MAX_OFFSET)
        return limit, offset

    @staticmethod
    def validate_fields(name: Optional[str],
                        description: Optional[str]) -> Tuple[str, Optional[str]]:
        """Trim and check item fields, raising ValidationError with every violation."""
        errors: List[Dict[str, str]] = []

        name = (name or "").strip()
        if not name:
            errors.append({"field": "name", "message": "Name is required"})
        elif len(name) > NAME_MAX_LENGTH:
            errors.append({"field": "name",
                           "message": f"Name must be at most {NAME_MAX_LENGTH} characters"})

        if description is not None:
            description = description.strip()
            if len(description) > DESCRIPTION_MAX_LENGTH:
                errors.append({"field": "description",
                               "message": f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters"})

        if errors:
            raise ValidationError(errors)
        return name, description

    @staticmethod
    def validate_id(item_id: int) -> int:
        if isinstance(item_id, bool) or not isinstance(item_id, int) or not 1 <= item_id <= MAX_ITEM_ID:
            raise ValidationError([{"field": "id", "message": "ID must be a positive integer"}])
        return item_id

    # ============================================================================
    # Reads
    # ============================================================================

    async def list_items(self, limit: Optional[int] = None,
                         offset: Optional[int] = None) -> CachedResult:
        """Get a page of items, newest first."""
        limit, offset = self.normalize_page(limit, offset)
        cache_key = list_cache_key(limit, offset)

        cached = await self.cache.get(cache_key)
        if cached is not None:
            return CachedResult(SOURCE_CACHE, cached)

        start = time.perf_counter()
        count = await self.database.count_items()
        items = await self.database.list_items(limit, offset)
        log_execution_time(logger, "list_items", start, time.perf_counter(),
                           limit=limit, offset=offset, count=count)

        page = {"count": count, "data": [serialize_item(item) for item in items]}
        await self.cache.set(cache_key, page, ttl=self.settings.items_list_cache_ttl)
        return CachedResult(SOURCE_DATABASE, page)

    async def get_item(self, item_id: int) -> CachedResult:
        """Get one item. Missing items are not cached."""
        item_id = self.validate_id(item_id)
        cache_key = item_cache_key(item_id)

        cached = await self.cache.get(cache_key)
        if cached is not None:
            return CachedResult(SOURCE_CACHE, cached)

        start = time.perf_counter()
        item = await self.database.get_item(item_id)
        log_execution_time(logger, "get_item", start, time.perf_counter(), item_id=item_id)

        if item is None:
            raise NotFoundError(item_id)

        data = serialize_item(item)
        await self.cache.set(cache_key, data, ttl=self.settings.item_cache_ttl)
        return CachedResult(SOURCE_DATABASE, data)

    # ============================================================================
    # Writes
    # ============================================================================

    async def create_item(self, name: Optional[str],
                          description: Optional[str] = None) -> Dict[str, Any]:
        """Create an item and drop every cached listing."""
        name, description = self.validate_fields(name, description)

        item = await self.database.insert_item(name, description)
        await self.invalidate_listings()

        logger.info("Item created", item_id=item.id, name=name)
        return serialize_item(item)

    async def update_item(self, item_id: int, name: Optional[str],
                          description: Optional[str] = None) -> Dict[str, Any]:
        """Update an item and drop its cached copy and every cached listing."""
        item_id = self.validate_id(item_id)
        name, description = self.validate_fields(name, description)

        item = await self.database.update_item(item_id, name, description)
        if item is None:
            raise NotFoundError(item_id)

        await self.invalidate_item(item_id)

        logger.info("Item updated", item_id=item_id, name=name)
        return serialize_item(item)

    async def delete_item(self, item_id: int) -> Dict[str, Any]:
        """Delete an item and return the removed record."""
        item_id = self.validate_id(item_id)

        item = await self.database.delete_item(item_id)
        if item is None:
            raise NotFoundError(item_id)

        await self.invalidate_item(item_id)

        logger.info("Item deleted", item_id=item_id)
        return serialize_item(item)

    # ============================================================================
    # Invalidation
    # ============================================================================

    async def invalidate_listings(self) -> int:
        return await self.cache.clear_pattern(LIST_KEY_PATTERN)

    async def invalidate_item(self, item_id: int) -> None:
        await self.cache.delete(item_cache_key(item_id))
        await self.invalidate_listings()
