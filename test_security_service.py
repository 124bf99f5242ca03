import pytest
from datetime import datetime, timedelta
from jose import jwt

from src.api.dependencies.auth import get_current_user
from src.core.exceptions import UnauthenticatedError
from src.services.security_service import SecurityService, settings


def host_token(claims, key=None):
    """Токен в том виде, в каком его выдаёт хост"""
    return jwt.encode(claims, key or settings.SECRET_KEY, algorithm=settings.ALGORITHM)


class TestSecurityService:
    """Юниттесты для SecurityService"""

    def test_valid_token(self):
        token = host_token({"sub": "user-1", "exp": datetime.utcnow() + timedelta(minutes=5)})

        assert SecurityService.get_user_id(token) == "user-1"

    def test_numeric_subject_becomes_string(self):
        token = host_token({"sub": "42"})

        assert SecurityService.get_user_id(token) == "42"

    def test_expired_token(self):
        token = host_token({"sub": "user-1", "exp": datetime.utcnow() - timedelta(minutes=5)})

        assert SecurityService.verify_token(token) is None

    def test_wrong_signature(self):
        token = host_token({"sub": "user-1"}, key="not-the-host-key")

        assert SecurityService.get_user_id(token) is None

    def test_refresh_token_is_rejected(self):
        token = host_token({"sub": "user-1", "type": "refresh"})

        assert SecurityService.get_user_id(token) is None

    def test_token_without_subject(self):
        assert SecurityService.get_user_id(host_token({"name": "anon"})) is None

    def test_garbage(self):
        assert SecurityService.verify_token("not-a-jwt") is None


class TestGetCurrentUser:

    @pytest.mark.asyncio
    async def test_current_user(self):
        user = await get_current_user(host_token({"sub": "user-1"}))

        assert user.id == "user-1"

    @pytest.mark.asyncio
    async def test_missing_token(self):
        with pytest.raises(UnauthenticatedError) as exc_info:
            await get_current_user(None)

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_token(self):
        with pytest.raises(UnauthenticatedError):
            await get_current_user("broken")
