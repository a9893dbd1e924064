"""User authentication service with JWT handling."""

from datetime import datetime, timezone, timedelta
from typing import Optional, Dict, Any, Tuple

from jose import jwt, JWTError
from sqlalchemy import delete, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from core.config import Settings
from core.database import Database
from core.logging import get_logger
from models.auth import User, RefreshToken

logger = get_logger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

TAKEN_MESSAGE = "Email or username is already taken"


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on read
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class UserAuthService:
    """Handles user registration, login, and JWT access/refresh tokens."""

    def __init__(self, database: Database, settings: Settings):
        self.database = database
        self.settings = settings
        self._algorithm = "HS256"

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email address."""
        async with self.database.get_session() as session:
            result = await session.execute(
                select(User).where(User.email == email.lower().strip())
            )
            return result.scalars().first()

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        async with self.database.get_session() as session:
            return await session.get(User, user_id)

    async def _is_taken(self, session: AsyncSession, email: str, username: str) -> bool:
        result = await session.execute(
            select(User).where(or_(User.email == email, User.username == username))
        )
        return result.scalars().first() is not None

    async def register(
        self, email: str, password: str, username: str
    ) -> Tuple[Optional[User], Optional[str]]:
        """
        Register a new user.
        Returns (user, None) on success, (None, error_message) on failure.
        """
        email = email.lower().strip()
        username = username.strip()

        async with self.database.get_session() as session:
            if await self._is_taken(session, email, username):
                return None, TAKEN_MESSAGE

            user = User.create(
                email=email,
                password=password,
                username=username,
                rounds=self.settings.bcrypt_rounds
            )
            session.add(user)
            try:
                await session.commit()
            except IntegrityError:
                # A concurrent registration won the unique constraint
                await session.rollback()
                return None, TAKEN_MESSAGE
            await session.refresh(user)

        logger.info("User registered", user_id=user.id, email=user.email)
        return user, None

    async def login(
        self, email: str, password: str
    ) -> Tuple[Optional[User], Optional[str]]:
        """
        Authenticate user and return user object.
        Returns (user, None) on success, (None, error_message) on failure.
        """
        user = await self.get_user_by_email(email)
        if not user or not user.verify_password(password):
            return None, "Email or password is incorrect"

        logger.info("User logged in", user_id=user.id, email=user.email)
        return user, None

    def create_access_token(self, user: User) -> str:
        """Create short-lived JWT access token for user."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "username": user.username,
            "role": user.role,
            "type": ACCESS_TOKEN_TYPE,
            "exp": now + timedelta(minutes=self.settings.jwt_access_expire_minutes),
            "iat": now
        }
        return jwt.encode(payload, self.settings.jwt_secret_key, algorithm=self._algorithm)

    async def create_refresh_token(self, user: User) -> str:
        """Create a long-lived refresh token and persist it."""
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(days=self.settings.jwt_refresh_expire_days)
        payload = {
            "sub": str(user.id),
            "type": REFRESH_TOKEN_TYPE,
            "exp": expires_at,
            "iat": now,
            # Two refresh tokens issued in the same second must still differ
            "jti": f"{user.id}-{now.timestamp()}"
        }
        token = jwt.encode(payload, self.settings.jwt_secret_key, algorithm=self._algorithm)

        async with self.database.get_session() as session:
            session.add(RefreshToken(user_id=user.id, token=token, expires_at=expires_at))
            await session.commit()

        return token

    async def issue_tokens(self, user: User) -> Dict[str, str]:
        return {
            "accessToken": self.create_access_token(user),
            "refreshToken": await self.create_refresh_token(user),
        }

    def verify_token(self, token: str,
                     token_type: str = ACCESS_TOKEN_TYPE) -> Optional[Dict[str, Any]]:
        """
        Verify JWT token and return payload.
        Returns None if token is invalid, expired, or of the wrong type.
        """
        try:
            payload = jwt.decode(
                token,
                self.settings.jwt_secret_key,
                algorithms=[self._algorithm]
            )
        except JWTError as e:
            logger.debug("Token verification failed", error=str(e))
            return None

        if payload.get("type") != token_type:
            return None
        return payload

    async def refresh_access_token(self, refresh_token: str) -> Optional[str]:
        """Exchange a stored, unexpired refresh token for a new access token."""
        payload = self.verify_token(refresh_token, REFRESH_TOKEN_TYPE)
        if not payload:
            return None

        async with self.database.get_session() as session:
            result = await session.execute(
                select(RefreshToken).where(RefreshToken.token == refresh_token)
            )
            stored = result.scalars().first()

        if not stored or _as_utc(stored.expires_at) <= datetime.now(timezone.utc):
            return None

        user = await self.get_user_by_id(int(payload["sub"]))
        if not user:
            return None

        return self.create_access_token(user)

    async def logout(self, user_id: int) -> int:
        """Revoke every refresh token of the user."""
        async with self.database.get_session() as session:
            result = await session.execute(
                delete(RefreshToken).where(RefreshToken.user_id == user_id)
            )
            await session.commit()

        logger.info("User logged out", user_id=user_id)
        return result.rowcount or 0

    async def get_current_user(self, token: str) -> Optional[User]:
        """Get current user from access token."""
        payload = self.verify_token(token)
        if not payload:
            return None

        user_id = payload.get("sub")
        if not user_id:
            return None

        return await self.get_user_by_id(int(user_id))
