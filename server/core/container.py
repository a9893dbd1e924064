"""Dependency injection container for the application."""

from dependency_injector import containers, providers

from core.config import Settings
from core.database import Database
from core.cache import CacheService
from services.items import ItemService
from services.user_auth import UserAuthService


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    # Settings
    settings = providers.Singleton(
        Settings,
    )

    # Authoritative store
    database = providers.Singleton(
        Database,
        settings=settings
    )

    # Cache service (Redis when enabled, in-memory otherwise)
    cache = providers.Singleton(
        CacheService,
        settings=settings
    )

    # Services
    item_service = providers.Factory(
        ItemService,
        database=database,
        cache=cache,
        settings=settings
    )

    user_auth_service = providers.Factory(
        UserAuthService,
        database=database,
        settings=settings
    )


# Global container instance
container = Container()
