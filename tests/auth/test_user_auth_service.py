"""Tests for UserAuthService registration against the unique constraints."""

import pytest
from unittest.mock import AsyncMock, patch

from services.user_auth import TAKEN_MESSAGE, UserAuthService


@pytest.fixture
def auth_service(database, settings):
    return UserAuthService(database=database, settings=settings)


class TestRegister:

    @pytest.mark.asyncio
    async def test_duplicate_is_reported_before_insert(self, auth_service):
        await auth_service.register("alice@mail.com", "secret123", "alice")

        user, error = await auth_service.register("ALICE@mail.com", "secret123", "alice2")

        assert user is None
        assert error == TAKEN_MESSAGE

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_hits_unique_constraint(self, auth_service):
        # Both registrations pass the lookup, as when they race
        with patch.object(UserAuthService, "_is_taken", AsyncMock(return_value=False)):
            first, _ = await auth_service.register("alice@mail.com", "secret123", "alice")
            user, error = await auth_service.register("alice@mail.com", "secret123", "alice2")

        assert first.id is not None
        assert user is None
        assert error == TAKEN_MESSAGE
        assert (await auth_service.get_user_by_email("alice@mail.com")).id == first.id
