from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.database import get_async_session
from src.api.dependencies.auth import get_activity_log, get_current_user, get_team_directory
from src.api.dependencies.permissions import check_board_access
from src.models.activity import ActivityType
from src.schemas.auth import CurrentUser
from src.services import access_service
from src.services.activity_service import ActivityLog
from src.services.column_service import ColumnService
from src.services.team_service import TeamDirectory
from src.schemas.column import (
    ColumnCreate,
    ColumnResponse,
    ColumnUpdate,
    ColumnOrderUpdate
)

router = APIRouter(
    prefix="/boards/{board_id}/columns",
    tags=["columns"],
)


@router.put("/reorder", response_model=List[ColumnResponse])
async def reorder_columns(
    board_id: int,
    column_order: ColumnOrderUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
    activity: ActivityLog = Depends(get_activity_log),
):
    """Reorder all columns of a board (Owner/Editor)"""
    await check_board_access(
        db, board_id, current_user.id, teams, access_service.can_edit,
        "Reordering columns is not allowed with your role"
    )

    columns = await ColumnService.reorder_columns(
        db=db,
        board_id=board_id,
        column_order=column_order.column_ids
    )

    await activity.append(
        board_id,
        ActivityType.COLUMN_REORDERED,
        user_id=current_user.id,
        details={"column_ids": column_order.column_ids}
    )
    return columns


@router.post("", response_model=ColumnResponse, status_code=status.HTTP_201_CREATED)
async def create_column(
    board_id: int,
    column_create: ColumnCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
    activity: ActivityLog = Depends(get_activity_log),
):
    """Create a new column in a board (Owner/Editor)"""
    await check_board_access(
        db, board_id, current_user.id, teams, access_service.can_edit,
        "Creating columns is not allowed with your role"
    )

    column = await ColumnService.create(
        db=db,
        board_id=board_id,
        name=column_create.name,
        position=column_create.position,
        wip_limit=column_create.wip_limit,
        color=column_create.color
    )

    await activity.append(
        board_id,
        ActivityType.COLUMN_CREATED,
        user_id=current_user.id,
        details={"column_id": column.id, "name": column.name, "position": column.position}
    )
    return column


@router.put("/{column_id}", response_model=ColumnResponse)
async def update_column(
    board_id: int,
    column_id: int,
    column_update: ColumnUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
    activity: ActivityLog = Depends(get_activity_log),
):
    """Update a column; a new position moves it within the board (Owner/Editor)"""
    await check_board_access(
        db, board_id, current_user.id, teams, access_service.can_edit,
        "Updating columns is not allowed with your role"
    )

    changes = column_update.model_dump(exclude_unset=True)
    column = await ColumnService.update(
        db=db,
        board_id=board_id,
        column_id=column_id,
        changes=changes
    )

    await activity.append(
        board_id,
        ActivityType.COLUMN_UPDATED,
        user_id=current_user.id,
        details={"column_id": column_id, "changes": changes}
    )
    return column


@router.delete("/{column_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_column(
    board_id: int,
    column_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
    activity: ActivityLog = Depends(get_activity_log),
):
    """Delete a column with its cards (Owner/Editor)"""
    await check_board_access(
        db, board_id, current_user.id, teams, access_service.can_edit,
        "Deleting columns is not allowed with your role"
    )

    name = await ColumnService.delete(db=db, board_id=board_id, column_id=column_id)

    await activity.append(
        board_id,
        ActivityType.COLUMN_DELETED,
        user_id=current_user.id,
        details={"column_id": column_id, "name": name}
    )
    return None
