"""Item store exception hierarchy."""

from typing import Dict, List, Optional


class ItemStoreError(Exception):
    """Base exception for all item store errors."""


class ValidationError(ItemStoreError):
    """Caller input violates field constraints."""

    def __init__(self, details: List[Dict[str, str]]):
        self.details = details
        super().__init__("; ".join(f"{d['field']}: {d['message']}" for d in details))


class NotFoundError(ItemStoreError):
    """No record matches the requested id."""

    def __init__(self, item_id: Optional[int] = None):
        self.item_id = item_id
        super().__init__(f"Item {item_id} not found" if item_id is not None else "Item not found")


class StoreError(ItemStoreError):
    """Authoritative store unreachable or query failed."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"[{operation}] {message}")


class CacheUnavailable(ItemStoreError):
    """Cache backend unreachable. Never surfaced past CacheService."""
