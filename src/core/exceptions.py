from typing import Optional

from fastapi import status


class KanbanError(Exception):
    """Base class for errors surfaced to API clients"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class UnauthenticatedError(KanbanError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized"


class AccessDeniedError(KanbanError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied"


class NotFoundError(KanbanError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class InvalidReferenceError(KanbanError):
    """A referenced entity exists but lives outside the addressed board/scope"""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid reference"


class ValidationError(KanbanError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class ConcurrencyConflictError(KanbanError):
    """Scope lock contention exceeded the retry budget; safe to retry"""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "The board is being modified concurrently, please retry"
