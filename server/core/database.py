"""Modern async database service with SQLModel and SQLAlchemy 2.0."""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel, select

from core.config import Settings
from core.exceptions import StoreError
from core.logging import get_logger
from models.database import Item, utc_now
from models.auth import User, RefreshToken  # noqa: F401  (table registration)

logger = get_logger(__name__)


class Database:
    """Async database service with SQLModel.

    Item queries raise StoreError when the database is unreachable or a
    statement fails; a missing row is reported as None.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine = None
        self.async_session = None

    async def startup(self):
        """Initialize database connection and create tables."""
        try:
            # Disable verbose database logging
            logging.getLogger("aiosqlite").setLevel(logging.WARNING)
            logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
            logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)

            engine_kwargs: Dict[str, Any] = {"echo": self.settings.database_echo}
            if not self.settings.is_sqlite:
                engine_kwargs.update(
                    pool_size=self.settings.database_pool_size,
                    max_overflow=self.settings.database_max_overflow,
                    pool_pre_ping=True,
                )

            self.engine = create_async_engine(self.settings.database_url, **engine_kwargs)

            self.async_session = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False
            )

            async with self.engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)

            logger.info("Database initialized successfully")

        except Exception as e:
            logger.error("Database startup failed", error=str(e))
            raise

    async def shutdown(self):
        """Close database connections."""
        if self.engine:
            await self.engine.dispose()
            logger.info("Database connections closed")

    @asynccontextmanager
    async def get_session(self):
        """Get async database session."""
        if not self.async_session:
            raise RuntimeError("Database not initialized")

        async with self.async_session() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def ping(self) -> bool:
        """Check database connectivity."""
        try:
            async with self.get_session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError, RuntimeError) as e:
            logger.warning("Database ping failed", error=str(e))
            return False

    # ============================================================================
    # Items
    # ============================================================================

    async def count_items(self) -> int:
        """Count all items."""
        try:
            async with self.get_session() as session:
                result = await session.execute(select(func.count()).select_from(Item))
                return result.scalar_one()

        except (SQLAlchemyError, OSError) as e:
            logger.error("Failed to count items", error=str(e))
            raise StoreError("count", str(e)) from e

    async def list_items(self, limit: int, offset: int) -> List[Item]:
        """Get a page of items, newest first; ties ordered by id."""
        try:
            async with self.get_session() as session:
                stmt = (
                    select(Item)
                    .order_by(Item.created_at.desc(), Item.id.asc())
                    .limit(limit)
                    .offset(offset)
                )
                result = await session.execute(stmt)
                return list(result.scalars().all())

        except (SQLAlchemyError, OSError) as e:
            logger.error("Failed to list items", limit=limit, offset=offset, error=str(e))
            raise StoreError("select", str(e)) from e

    async def get_item(self, item_id: int) -> Optional[Item]:
        """Get item by ID."""
        try:
            async with self.get_session() as session:
                return await session.get(Item, item_id)

        except (SQLAlchemyError, OSError) as e:
            logger.error("Failed to get item", item_id=item_id, error=str(e))
            raise StoreError("select", str(e)) from e

    async def insert_item(self, name: str, description: Optional[str]) -> Item:
        """Insert a new item and return it with store-assigned fields."""
        try:
            async with self.get_session() as session:
                item = Item(name=name, description=description)
                session.add(item)
                await session.commit()
                await session.refresh(item)
                return item

        except (SQLAlchemyError, OSError) as e:
            logger.error("Failed to insert item", name=name, error=str(e))
            raise StoreError("insert", str(e)) from e

    async def update_item(self, item_id: int, name: str,
                          description: Optional[str]) -> Optional[Item]:
        """Update item fields. Returns None if no row matches."""
        try:
            async with self.get_session() as session:
                item = await session.get(Item, item_id)
                if item is None:
                    return None

                item.name = name
                item.description = description
                item.updated_at = utc_now()
                await session.commit()
                await session.refresh(item)
                return item

        except (SQLAlchemyError, OSError) as e:
            logger.error("Failed to update item", item_id=item_id, error=str(e))
            raise StoreError("update", str(e)) from e

    async def delete_item(self, item_id: int) -> Optional[Item]:
        """Delete item and return the removed row. Returns None if no row matches."""
        try:
            async with self.get_session() as session:
                item = await session.get(Item, item_id)
                if item is None:
                    return None

                await session.delete(item)
                await session.commit()
                return item

        except (SQLAlchemyError, OSError) as e:
            logger.error("Failed to delete item", item_id=item_id, error=str(e))
            raise StoreError("delete", str(e)) from e
