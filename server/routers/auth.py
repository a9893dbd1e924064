"""Authentication routes for registration, login, token refresh, and profile."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, EmailStr, Field

from core.container import container
from services.user_auth import UserAuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    username: str = Field(min_length=3, max_length=100)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RefreshRequest(BaseModel):
    refreshToken: str = ""


def get_user_auth_service() -> UserAuthService:
    return container.user_auth_service()


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    user_auth: UserAuthService = Depends(get_user_auth_service)
):
    """Register a new user and issue tokens."""
    user, error = await user_auth.register(request.email, request.password, request.username)
    if error:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=error)

    return {
        "message": "User registered successfully",
        "user": user.to_public(),
        **await user_auth.issue_tokens(user)
    }


@router.post("/login")
async def login(
    request: LoginRequest,
    user_auth: UserAuthService = Depends(get_user_auth_service)
):
    """Login with email and password."""
    user, error = await user_auth.login(request.email, request.password)
    if error:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=error)

    return {
        "message": "Login successful",
        "user": user.to_public(),
        **await user_auth.issue_tokens(user)
    }


@router.post("/refresh")
async def refresh(
    request: RefreshRequest,
    user_auth: UserAuthService = Depends(get_user_auth_service)
):
    """Exchange a refresh token for a new access token."""
    if not request.refreshToken:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token required")

    access_token = await user_auth.refresh_access_token(request.refreshToken)
    if not access_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    return {"accessToken": access_token}


@router.post("/logout")
async def logout(
    request: Request,
    user_auth: UserAuthService = Depends(get_user_auth_service)
):
    """Revoke the current user's refresh tokens."""
    await user_auth.logout(request.state.user_id)
    return {"message": "Logged out successfully"}


@router.get("/me")
async def me(
    request: Request,
    user_auth: UserAuthService = Depends(get_user_auth_service)
):
    """Current user profile."""
    user = await user_auth.get_user_by_id(request.state.user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return {
        "user": {
            **user.to_public(),
            "created_at": user.created_at,
            "updated_at": user.updated_at
        }
    }
