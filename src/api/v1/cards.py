from typing import List, Tuple
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.database import get_async_session
from src.api.dependencies.auth import get_activity_log, get_current_user, get_team_directory
from src.api.dependencies.permissions import check_board_access
from src.core.exceptions import NotFoundError
from src.models.activity import ActivityType
from src.models.board import Board, BoardRole
from src.models.card import Card
from src.schemas.auth import CurrentUser
from src.services import access_service
from src.services.activity_service import ActivityLog
from src.services.card_service import CardService
from src.services.column_service import ColumnService
from src.services.team_service import TeamDirectory
from src.schemas.card import (
    CardCreate,
    CardResponse,
    CardUpdate,
    CardReorder,
    CardMove
)
from src.logs import debug_logger

# Операции над порядком карточек внутри колонки
router = APIRouter(
    prefix="/boards/{board_id}/columns/{column_id}/cards",
    tags=["cards"],
)

board_cards_router = APIRouter(
    prefix="/boards/{board_id}/cards",
    tags=["cards"],
)

# Карточка адресуется напрямую, доска берётся из неё
cards_router = APIRouter(
    prefix="/cards",
    tags=["cards"],
)


async def check_card_access(
    db: AsyncSession,
    card_id: int,
    current_user: CurrentUser,
    teams: TeamDirectory,
    predicate=access_service.can_view,
    message: str = "Operation not allowed with your role"
) -> Tuple[Card, Board, BoardRole]:
    """
    Check access to a card through the board it belongs to

    Returns:
        The card, its board and the caller's role, otherwise raises
    """
    card = await CardService.get_by_id(db, card_id)
    if not card:
        raise NotFoundError("Card not found")

    board, role = await check_board_access(
        db, card.board_id, current_user.id, teams, predicate, message
    )
    return card, board, role


@router.get("", response_model=List[CardResponse])
async def get_column_cards(
    board_id: int,
    column_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
):
    """Get the live cards of a column in order"""
    await check_board_access(db, board_id, current_user.id, teams)
    await ColumnService.get_in_board(db, board_id, column_id)
    return await CardService.get_by_column_id(db, column_id)


@router.put("/reorder", response_model=List[CardResponse])
async def reorder_cards(
    board_id: int,
    column_id: int,
    card_order: CardReorder,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
    activity: ActivityLog = Depends(get_activity_log),
):
    """Reorder all live cards of a column (Owner/Editor)"""
    await check_board_access(
        db, board_id, current_user.id, teams, access_service.can_edit,
        "Reordering cards is not allowed with your role"
    )

    cards = await CardService.reorder_cards(
        db=db,
        board_id=board_id,
        column_id=column_id,
        card_order=card_order.card_ids
    )

    await activity.append(
        board_id,
        ActivityType.CARDS_REORDERED,
        user_id=current_user.id,
        details={"column_id": column_id, "card_ids": card_order.card_ids}
    )
    return cards


@board_cards_router.post("", response_model=CardResponse, status_code=status.HTTP_201_CREATED)
async def create_card(
    board_id: int,
    card_create: CardCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
    activity: ActivityLog = Depends(get_activity_log),
):
    """Create a card in a column of the board (Owner/Editor)"""
    await check_board_access(
        db, board_id, current_user.id, teams, access_service.can_edit,
        "Creating cards is not allowed with your role"
    )

    card = await CardService.create(
        db=db,
        board_id=board_id,
        column_id=card_create.column_id,
        title=card_create.title,
        created_by=current_user.id,
        description=card_create.description,
        priority=card_create.priority,
        due_date=card_create.due_date,
        assignee_id=card_create.assignee_id,
        labels=card_create.labels,
        position=card_create.position
    )

    await activity.append(
        board_id,
        ActivityType.CARD_CREATED,
        user_id=current_user.id,
        card_id=card.id,
        details={"title": card.title, "column_id": card.column_id, "position": card.position}
    )
    return card


@cards_router.get("/{card_id}", response_model=CardResponse)
async def get_card(
    card_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
):
    """Get a card by ID"""
    card, _, _ = await check_card_access(db, card_id, current_user, teams)
    return card


@cards_router.put("/{card_id}", response_model=CardResponse)
async def update_card(
    card_id: int,
    card_update: CardUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
    activity: ActivityLog = Depends(get_activity_log),
):
    """Update a card; ``is_archived`` archives or restores it (Owner/Editor)"""
    card, board, _ = await check_card_access(
        db, card_id, current_user, teams, access_service.can_edit,
        "Updating cards is not allowed with your role"
    )
    board_id = board.id
    was_archived, old_assignee = card.is_archived, card.assignee_id

    changes = card_update.model_dump(exclude_unset=True)
    updated_card = await CardService.update(db=db, card_id=card_id, changes=changes)

    if updated_card.is_archived != was_archived:
        await activity.append(
            board_id,
            ActivityType.CARD_ARCHIVED,
            user_id=current_user.id,
            card_id=card_id,
            details={"archived": updated_card.is_archived}
        )
    if "assignee_id" in changes and updated_card.assignee_id != old_assignee:
        await activity.append(
            board_id,
            ActivityType.CARD_ASSIGNED,
            user_id=current_user.id,
            card_id=card_id,
            details={"from": old_assignee, "to": updated_card.assignee_id}
        )
    fields = [key for key in changes if key not in ("is_archived", "assignee_id")]
    if fields:
        await activity.append(
            board_id,
            ActivityType.CARD_UPDATED,
            user_id=current_user.id,
            card_id=card_id,
            details={"fields": fields}
        )
    return updated_card


@cards_router.delete("/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_card(
    card_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
    activity: ActivityLog = Depends(get_activity_log),
):
    """Delete a card (Owner/Editor)"""
    _, board, _ = await check_card_access(
        db, card_id, current_user, teams, access_service.can_edit,
        "Deleting cards is not allowed with your role"
    )
    board_id = board.id

    card = await CardService.delete(db=db, card_id=card_id)

    await activity.append(
        board_id,
        ActivityType.CARD_DELETED,
        user_id=current_user.id,
        card_id=card_id,
        details={"title": card.title, "column_id": card.column_id}
    )
    return None


@cards_router.put("/{card_id}/move", response_model=CardResponse)
async def move_card(
    card_id: int,
    card_move: CardMove,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
    activity: ActivityLog = Depends(get_activity_log),
):
    """Move a card to a position in a column of the same board (Owner/Editor)"""
    _, board, _ = await check_card_access(
        db, card_id, current_user, teams, access_service.can_edit,
        "Moving cards is not allowed with your role"
    )
    board_id = board.id
    debug_logger.debug(f"Перемещение карточки {card_id}: {card_move.model_dump()}")

    moved_card, from_column_id, from_position = await CardService.move_card(
        db=db,
        card_id=card_id,
        new_column_id=card_move.column_id,
        new_position=card_move.position
    )

    await activity.append(
        board_id,
        ActivityType.CARD_MOVED,
        user_id=current_user.id,
        card_id=card_id,
        details={
            "from_column_id": from_column_id,
            "from_position": from_position,
            "to_column_id": moved_card.column_id,
            "to_position": moved_card.position,
        }
    )
    return moved_card
