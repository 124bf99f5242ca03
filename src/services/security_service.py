from datetime import datetime
from typing import Optional, Dict, Any
from jose import jwt, JWTError

from src.core import get_settings

# Get application settings
settings = get_settings()


class SecurityService:
    """Verification of access tokens issued by the host application.

    The plugin never issues tokens; it only checks the signature and expiry
    and takes the caller's id from the ``sub`` claim.
    """

    @staticmethod
    def verify_token(token: str) -> Optional[Dict[str, Any]]:
        """Verify a JWT token and return its payload if valid"""
        try:
            payload = jwt.decode(
                token,
                settings.SECRET_KEY,
                algorithms=[settings.ALGORITHM]
            )
        except JWTError:
            return None

        # Refresh-токены хоста для запросов не годятся
        if payload.get("type", "access") != "access":
            return None

        exp = payload.get("exp")
        if exp is not None and datetime.utcfromtimestamp(exp) < datetime.utcnow():
            return None

        return payload

    @staticmethod
    def get_user_id(token: str) -> Optional[str]:
        """Get the caller's host user id from a JWT token"""
        payload = SecurityService.verify_token(token)
        if not payload:
            return None

        user_id = payload.get("sub")
        if user_id is None or str(user_id) == "":
            return None
        return str(user_id)
