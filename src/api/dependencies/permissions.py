from typing import Callable, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import AccessDeniedError, NotFoundError
from src.models.board import Board, BoardRole
from src.services import access_service
from src.services.access_service import AccessService
from src.services.board_service import BoardService
from src.services.team_service import TeamDirectory


async def check_board_access(
    db: AsyncSession,
    board_id: int,
    user_id: str,
    teams: TeamDirectory,
    predicate: Callable[[BoardRole], bool] = access_service.can_view,
    message: str = "Operation not allowed with your role"
) -> Tuple[Board, BoardRole]:
    """
    Check that a user may perform an operation on a board

    Args:
        db: Database session
        board_id: Board ID
        user_id: Caller's host user id
        teams: Team membership lookup
        predicate: Role predicate of the operation
        message: Detail of the error when the predicate fails

    Returns:
        The board and the caller's resolved role, otherwise raises
    """
    board = await BoardService.get_by_id(db, board_id)
    if not board:
        raise NotFoundError("Board not found")

    role = await AccessService.resolve_role(db, board, user_id, teams)
    if role is None:
        raise AccessDeniedError("You don't have access to this board")

    if not predicate(role):
        raise AccessDeniedError(f"{message}: {role.value}")

    return board, role
