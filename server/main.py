"""
FastAPI backend for the items service.

Items CRUD over a cache-aside read path (Redis in front of PostgreSQL) plus
JWT authentication, with dependency injection and structured logging.
"""

# Performance: Install uvloop if available (Linux/macOS only)
try:
    import uvloop
    uvloop.install()
except ImportError:
    pass  # Windows - uvloop not available, use default asyncio

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from core.container import container
from core.config import Settings
from core.exceptions import NotFoundError, StoreError, ValidationError
from core.health import get_health_status, get_readiness, get_uptime, set_startup_time
from core.logging import configure_logging, get_logger
from middleware.auth import AuthMiddleware
from middleware.request_id import RequestIDMiddleware
from routers import auth, items

# Initialize settings and logging
settings = Settings()
configure_logging(settings)
logger = get_logger(__name__)

# Suppress noisy loggers
logging.getLogger("uvicorn").setLevel(logging.WARNING)
logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
logging.getLogger("watchfiles").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting items service")
    set_startup_time()

    await container.database().startup()
    await container.cache().startup()

    logger.info("Services started successfully")
    yield

    await container.cache().shutdown()
    await container.database().shutdown()
    logger.info("Services shutdown complete")


app = FastAPI(
    title="Multi-Service API",
    version=settings.version,
    description="Items CRUD with Redis caching and JWT authentication",
    lifespan=lifespan,
    default_response_class=ORJSONResponse
)


# ============================================================================
# Error mapping
# ============================================================================

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Validation failed", "details": exc.details}
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0]),
         "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Validation failed", "details": details}
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": "Item not found"}
    )


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Store error", operation=exc.operation, error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"}
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None)
    )


class CatchAllExceptionsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error("Unhandled exception", error=f"{type(e).__name__}: {e}",
                         path=request.url.path, exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "Internal server error" if settings.is_production else f"{type(e).__name__}: {e}",
                    "requestId": getattr(request.state, "request_id", None)
                }
            )


# Middleware runs outermost-last-added: CORS -> request id -> catch-all -> auth
app.add_middleware(AuthMiddleware)
app.add_middleware(CatchAllExceptionsMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    expose_headers=["X-Request-ID", "X-Cache-Source"],
)

app.include_router(auth.router)
app.include_router(items.router)


# ============================================================================
# Operational endpoints
# ============================================================================

@app.get("/health")
async def health_check():
    """Detailed health check."""
    health = await get_health_status(container.database(), container.cache(), container.settings())
    status_code = status.HTTP_200_OK if health["status"] == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE
    return ORJSONResponse(health, status_code=status_code)


@app.get("/ready")
async def readiness():
    """Readiness probe: database and cache must both respond."""
    checks = await get_readiness(container.database(), container.cache())
    if all(checks.values()):
        return {"ready": True}
    return ORJSONResponse({"ready": False, "checks": checks},
                          status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


@app.get("/live")
async def liveness():
    """Liveness probe."""
    return {"alive": True, "uptime": int(get_uptime())}


@app.get("/api")
async def api_info():
    """Service info and endpoint index."""
    return {
        "name": "Multi-Service API",
        "version": settings.version,
        "documentation": "/docs",
        "health": "/health",
        "endpoints": {
            "items": "/api/items",
            "auth": "/api/auth"
        }
    }


if __name__ == "__main__":
    import uvicorn
    logger.info("Starting items service",
                host=settings.host, port=settings.port, debug=settings.debug)
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers
    )
