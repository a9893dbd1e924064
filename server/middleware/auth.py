"""Authentication middleware for route protection."""

from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.container import container
from core.logging import get_logger

logger = get_logger(__name__)

# Routes that require a valid Bearer access token
PROTECTED_PATHS = frozenset([
    "/api/auth/me",
    "/api/auth/logout",
])


def get_bearer_token(request: Request) -> Optional[str]:
    """Extract token from an `Authorization: Bearer <token>` header."""
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


class AuthMiddleware(BaseHTTPMiddleware):
    """Attaches the token's user to request state and guards protected routes.

    Public routes accept a missing or invalid token; protected routes answer
    401 without a token and 403 with an invalid or expired one.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.user_id = None
        token = get_bearer_token(request)
        protected = request.url.path in PROTECTED_PATHS

        if not token:
            if protected:
                return JSONResponse(
                    status_code=401,
                    content={"error": "Access denied", "message": "No token provided"}
                )
            return await call_next(request)

        user_auth = container.user_auth_service()
        payload = user_auth.verify_token(token)

        if not payload:
            if protected:
                logger.warning("Invalid token attempt", path=request.url.path)
                return JSONResponse(
                    status_code=403,
                    content={"error": "Invalid token", "message": "Token is invalid or expired"}
                )
            return await call_next(request)

        # Attach user info to request state for downstream handlers
        request.state.user_id = int(payload["sub"])
        request.state.user_email = payload.get("email")
        request.state.user_role = payload.get("role")

        return await call_next(request)
