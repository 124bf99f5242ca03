from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.database import get_async_session
from src.api.dependencies.auth import get_activity_log, get_current_user, get_team_directory
from src.api.v1.cards import check_card_access
from src.core.exceptions import AccessDeniedError
from src.models.activity import ActivityType
from src.schemas.auth import CurrentUser
from src.services import access_service
from src.services.activity_service import ActivityLog
from src.services.comment_service import CommentService
from src.services.team_service import TeamDirectory
from src.schemas.comment import (
    CommentCreate,
    CommentResponse,
    CommentUpdate
)
from src.logs import debug_logger

router = APIRouter(
    prefix="/cards/{card_id}/comments",
    tags=["comments"],
)


@router.post("", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    card_id: int,
    comment_data: CommentCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
    activity: ActivityLog = Depends(get_activity_log),
):
    """Add a comment to a card (Owner/Editor)"""
    _, board, _ = await check_card_access(
        db, card_id, current_user, teams, access_service.can_edit,
        "Commenting is not allowed with your role"
    )
    board_id = board.id

    comment = await CommentService.create(
        db=db,
        content=comment_data.content,
        card_id=card_id,
        user_id=current_user.id
    )
    debug_logger.info(f"Комментарий {comment.id} добавлен к карточке {card_id}")

    await activity.append(
        board_id,
        ActivityType.COMMENT_ADDED,
        user_id=current_user.id,
        card_id=card_id,
        details={"comment_id": comment.id}
    )
    return comment


@router.get("", response_model=List[CommentResponse])
async def get_comments(
    card_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
):
    """Get all comments for a card"""
    await check_card_access(db, card_id, current_user, teams)
    return await CommentService.get_by_card_id(db=db, card_id=card_id)


@router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    card_id: int,
    comment_id: int,
    comment_data: CommentUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
    activity: ActivityLog = Depends(get_activity_log),
):
    """Edit a comment (Owner/Editor, author only)"""
    _, board, _ = await check_card_access(
        db, card_id, current_user, teams, access_service.can_edit,
        "Editing comments is not allowed with your role"
    )
    board_id = board.id

    comment = await CommentService.get_on_card(db, card_id, comment_id)
    if comment.user_id != current_user.id:
        raise AccessDeniedError("Only the author can edit a comment")

    comment = await CommentService.update(db=db, comment_id=comment_id, content=comment_data.content)

    await activity.append(
        board_id,
        ActivityType.COMMENT_UPDATED,
        user_id=current_user.id,
        card_id=card_id,
        details={"comment_id": comment_id}
    )
    return comment


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    card_id: int,
    comment_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
    activity: ActivityLog = Depends(get_activity_log),
):
    """Delete a comment (author or board owner, while they can edit the board)"""
    _, board, role = await check_card_access(
        db, card_id, current_user, teams, access_service.can_edit,
        "Deleting comments is not allowed with your role"
    )
    board_id = board.id

    comment = await CommentService.get_on_card(db, card_id, comment_id)
    if not access_service.can_delete_comment(role, comment.user_id, current_user.id):
        raise AccessDeniedError("Only the author or the board owner can delete a comment")

    await CommentService.delete(db=db, comment_id=comment_id)

    await activity.append(
        board_id,
        ActivityType.COMMENT_DELETED,
        user_id=current_user.id,
        card_id=card_id,
        details={"comment_id": comment_id}
    )
    return None
