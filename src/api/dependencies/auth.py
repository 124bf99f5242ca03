from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.core import get_settings
from src.core.exceptions import UnauthenticatedError
from src.db.database import get_async_session, async_session_factory
from src.schemas.auth import CurrentUser
from src.services.activity_service import ActivityLog
from src.services.security_service import SecurityService
from src.services.team_service import SqlTeamDirectory, TeamDirectory

settings = get_settings()

# Токен выдаёт хост, здесь только проверяем
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=settings.AUTH_TOKEN_URL, auto_error=False)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
) -> CurrentUser:
    """
    Get the caller from the host's JWT bearer token

    Returns:
        CurrentUser: The authenticated caller

    Raises:
        UnauthenticatedError: If the token is missing or invalid
    """
    if not token:
        raise UnauthenticatedError("Authentication token required")

    user_id = SecurityService.get_user_id(token)
    if not user_id:
        raise UnauthenticatedError("Invalid authentication credentials")
    return CurrentUser(id=user_id)


async def get_team_directory(
    db: AsyncSession = Depends(get_async_session),
) -> TeamDirectory:
    """Team membership lookup; override this dependency to plug in another host"""
    return SqlTeamDirectory(db)


def get_activity_log() -> ActivityLog:
    return ActivityLog(async_session_factory)
