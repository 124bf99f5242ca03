from typing import Optional
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.database import get_async_session
from src.api.dependencies.auth import get_activity_log, get_current_user, get_team_directory
from src.api.dependencies.permissions import check_board_access
from src.core.exceptions import AccessDeniedError
from src.models.activity import ActivityType
from src.models.board import Board, BoardRole, BoardType
from src.schemas.auth import CurrentUser
from src.schemas.board import (
    BoardCreate,
    BoardInDB,
    BoardUpdate,
    BoardList,
    BoardSummary,
    BoardCompleteResponse
)
from src.schemas.column import ColumnResponse
from src.schemas.member import MemberResponse
from src.services import access_service
from src.services.activity_service import ActivityLog
from src.services.board_service import BoardService
from src.services.team_service import TeamDirectory
from src.logs import api_logger

router = APIRouter(
    prefix="/boards",
    tags=["boards"],
)


def complete_board_response(board: Board, role: BoardRole) -> BoardCompleteResponse:
    """Board with columns, live cards, members and the caller's permissions"""
    return BoardCompleteResponse(
        **BoardInDB.model_validate(board).model_dump(),
        columns=[ColumnResponse.model_validate(column) for column in board.columns],
        members=[MemberResponse.model_validate(member) for member in board.members],
        role=role,
        permissions=access_service.get_role_permissions(role),
    )


@router.post("", response_model=BoardCompleteResponse, status_code=status.HTTP_201_CREATED)
async def create_board(
    board_create: BoardCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
    activity: ActivityLog = Depends(get_activity_log),
):
    """Create a new board; team boards need membership in the team"""
    if board_create.type == BoardType.TEAM and board_create.team_id:
        if not await teams.is_member(board_create.team_id, current_user.id):
            raise AccessDeniedError("You are not a member of this team")

    columns = None
    if board_create.columns is not None:
        columns = [column.model_dump() for column in board_create.columns]

    board = await BoardService.create(
        db=db,
        owner_id=current_user.id,
        name=board_create.name,
        description=board_create.description,
        board_type=board_create.type,
        team_id=board_create.team_id,
        background_color=board_create.background_color,
        template_id=board_create.template_id,
        columns=columns,
    )

    await activity.append(
        board.id,
        ActivityType.BOARD_CREATED,
        user_id=current_user.id,
        details={"name": board.name, "type": board.type.value, "template_id": board_create.template_id}
    )
    return complete_board_response(board, BoardRole.OWNER)


@router.get("", response_model=BoardList)
async def get_boards(
    type: str = Query("all", pattern="^(personal|team|all)$"),
    team_id: Optional[str] = Query(None),
    is_archived: bool = Query(False),
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
):
    """Get all boards available to the current user"""
    team_ids = await teams.team_ids_for(current_user.id)
    rows = await BoardService.get_boards_by_user(
        db=db,
        user_id=current_user.id,
        team_ids=team_ids,
        board_type=None if type == "all" else BoardType(type),
        team_id=team_id,
        is_archived=is_archived,
    )

    boards = [
        BoardSummary(
            **BoardInDB.model_validate(board).model_dump(),
            card_count=card_count,
            member_count=member_count,
        )
        for board, card_count, member_count in rows
    ]
    return BoardList(boards=boards, total=len(boards))


@router.get("/{board_id}", response_model=BoardCompleteResponse)
async def get_board(
    board_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
):
    """Get a board with its columns, cards and members"""
    _, role = await check_board_access(db, board_id, current_user.id, teams)
    board = await BoardService.get_detail(db, board_id)
    return complete_board_response(board, role)


@router.put("/{board_id}", response_model=BoardCompleteResponse)
async def update_board(
    board_id: int,
    board_update: BoardUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
    activity: ActivityLog = Depends(get_activity_log),
):
    """Update board settings; archiving is reserved to the owner"""
    board, role = await check_board_access(
        db, board_id, current_user.id, teams, access_service.can_modify_board_settings,
        "Changing board settings is not allowed with your role"
    )
    if board_update.is_archived is not None and not access_service.can_archive_board(role):
        raise AccessDeniedError("Only the board owner can archive it")
    was_archived = board.is_archived

    changes = board_update.model_dump(exclude_unset=True)
    board = await BoardService.update(
        db=db,
        board_id=board_id,
        name=board_update.name,
        description=board_update.description,
        background_color=board_update.background_color,
        is_archived=board_update.is_archived,
    )

    if board.is_archived != was_archived:
        await activity.append(
            board_id,
            ActivityType.BOARD_ARCHIVED,
            user_id=current_user.id,
            details={"archived": board.is_archived}
        )
    fields = [key for key in changes if key != "is_archived"]
    if fields:
        await activity.append(
            board_id,
            ActivityType.BOARD_UPDATED,
            user_id=current_user.id,
            details={"fields": fields}
        )
    return complete_board_response(board, role)


@router.delete("/{board_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_board(
    board_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
):
    """Delete a board with everything on it (Owner only)"""
    await check_board_access(
        db, board_id, current_user.id, teams, access_service.can_delete,
        "Only the board owner can delete it"
    )

    await BoardService.delete(db=db, board_id=board_id)
    # Журнал активности доски удаляется вместе с ней
    api_logger.info(f"Board {board_id} deleted by user {current_user.id}")
    return None
