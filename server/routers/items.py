"""Items CRUD routes served through the cache-aside item service."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from core.container import container
from services.items import ItemService

router = APIRouter(prefix="/api/items", tags=["items"])

SOURCE_HEADER = "X-Cache-Source"


class ItemRequest(BaseModel):
    # Field rules are enforced by ItemService so every caller gets the same errors
    name: Optional[str] = None
    description: Optional[str] = None


def get_item_service() -> ItemService:
    return container.item_service()


@router.get("")
async def list_items(
    response: Response,
    limit: Optional[int] = Query(default=None, description="Maximum number of items to return (capped at 100)"),
    offset: Optional[int] = Query(default=None, description="Number of items to skip"),
    items: ItemService = Depends(get_item_service)
):
    """List items, newest first, with Redis caching."""
    result = await items.list_items(limit, offset)
    response.headers[SOURCE_HEADER] = result.source
    return {"source": result.source, **result.data}


@router.get("/{item_id}")
async def get_item(
    item_id: int,
    response: Response,
    items: ItemService = Depends(get_item_service)
):
    """Get item by ID."""
    result = await items.get_item(item_id)
    response.headers[SOURCE_HEADER] = result.source
    return result.data


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_item(
    request: ItemRequest,
    items: ItemService = Depends(get_item_service)
):
    """Create a new item."""
    return await items.create_item(request.name, request.description)


@router.put("/{item_id}")
async def update_item(
    item_id: int,
    request: ItemRequest,
    items: ItemService = Depends(get_item_service)
):
    """Update an item."""
    return await items.update_item(item_id, request.name, request.description)


@router.delete("/{item_id}")
async def delete_item(
    item_id: int,
    items: ItemService = Depends(get_item_service)
):
    """Delete an item."""
    item = await items.delete_item(item_id)
    return {"message": "Item deleted successfully", "item": item}
