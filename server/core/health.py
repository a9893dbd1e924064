"""Health check utilities for liveness, readiness, and /health.

Provides uptime tracking and connectivity status for the store and cache.
"""
import time
from datetime import datetime, timezone
from typing import Dict, Any, TYPE_CHECKING

import psutil

if TYPE_CHECKING:
    from core.config import Settings
    from core.database import Database
    from core.cache import CacheService

# Module-level startup time tracking
_startup_time: float = 0.0


def set_startup_time() -> None:
    """Record the application startup time. Call once during lifespan startup."""
    global _startup_time
    _startup_time = time.time()


def get_uptime() -> float:
    """Get uptime in seconds since startup."""
    return time.time() - _startup_time if _startup_time else 0.0


def get_memory_mb() -> float:
    """Get current process memory usage in MB."""
    try:
        return psutil.Process().memory_info().rss / (1024 * 1024)
    except psutil.Error:
        return 0.0


async def get_readiness(database: "Database", cache: "CacheService") -> Dict[str, bool]:
    """Check store and cache connectivity."""
    return {
        "database": await database.ping(),
        "cache": await cache.ping(),
    }


async def get_health_status(
    database: "Database",
    cache: "CacheService",
    settings: "Settings"
) -> Dict[str, Any]:
    """Get comprehensive health status for /health endpoint.

    Returns:
        Dict containing status, uptime, resource usage, and service checks.
    """
    checks = await get_readiness(database, cache)
    overall_status = "healthy" if all(checks.values()) else "degraded"

    return {
        "status": overall_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.version,
        "uptime_seconds": round(get_uptime(), 1),
        "memory_mb": round(get_memory_mb(), 1),
        "services": {
            "database": "connected" if checks["database"] else "disconnected",
            "cache": "connected" if checks["cache"] else "disconnected",
            "cache_backend": "redis" if cache.is_redis_available() else "memory",
        },
    }
