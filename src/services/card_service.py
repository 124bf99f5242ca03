from typing import Any, Dict, List, Optional, Sequence, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete
from datetime import datetime

from src.core.exceptions import ConcurrencyConflictError, InvalidReferenceError, NotFoundError, ValidationError
from src.models.card import Card, CardPriority
from src.models.column import Column
from src.logs import debug_logger, log_function, api_logger
from src.services.position_index import PositionIndex, ScopeChanged, cards_of

# Поля, которые меняются без блокировки порядка (последняя запись побеждает)
EDITABLE_FIELDS = ("title", "description", "priority", "due_date", "assignee_id", "labels")


class CardService:
    """CRUD operations service for Card model"""

    @staticmethod
    @log_function()
    async def create(
        db: AsyncSession,
        board_id: int,
        column_id: int,
        title: str,
        created_by: str,
        description: Optional[str] = None,
        priority: CardPriority = CardPriority.MEDIUM,
        due_date: Optional[datetime] = None,
        assignee_id: Optional[str] = None,
        labels: Optional[List[str]] = None,
        position: Optional[int] = None
    ) -> Card:
        """Create a new card in a column at ``position`` (default: last)"""
        title = (title or "").strip()
        if not title:
            raise ValidationError("Card title is required")

        async def _create() -> int:
            columns = await PositionIndex.lock_columns(db, column_id)
            if columns[column_id].board_id != board_id:
                raise InvalidReferenceError("Column does not belong to the specified board")

            new_position = await PositionIndex.insert(db, cards_of(column_id), position)
            card = Card(
                title=title,
                description=description,
                column_id=column_id,
                board_id=board_id,
                position=new_position,
                priority=priority or CardPriority.MEDIUM,
                due_date=due_date,
                assignee_id=assignee_id,
                labels=list(labels or []),
                created_by=created_by
            )
            db.add(card)
            await db.flush()  # Получаем ID карточки
            return card.id

        card_id = await PositionIndex.atomic(db, _create)
        debug_logger.info(f"Создана новая карточка: ID {card_id}, в колонке {column_id}")
        return await CardService.get_by_id(db, card_id)

    @staticmethod
    async def get_by_id(
        db: AsyncSession,
        card_id: int
    ) -> Optional[Card]:
        """Get a card by ID, always re-read from the database"""
        query = (
            select(Card)
            .where(Card.id == card_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    async def get_by_column_id(
        db: AsyncSession,
        column_id: int,
        include_archived: bool = False
    ) -> List[Card]:
        """Get the cards of a column; live cards come in position order"""
        query = select(Card).where(Card.column_id == column_id)
        if not include_archived:
            query = query.where(Card.is_archived.is_(False))
        query = query.order_by(Card.is_archived, Card.position, Card.id).execution_options(
            populate_existing=True
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def _lock_card(
        db: AsyncSession,
        card_id: int,
        *other_column_ids: int
    ) -> Tuple[Card, Dict[int, Column]]:
        """Lock the card's column (and ``other_column_ids``) and re-read the card.

        Raises ScopeChanged if the card left its column before the lock was
        taken, so the whole unit is retried.
        """
        card = await CardService.get_by_id(db, card_id)
        if not card:
            raise NotFoundError("Card not found")
        column_id = card.column_id

        columns = await PositionIndex.lock_columns(db, column_id, *other_column_ids)

        card = await CardService.get_by_id(db, card_id)
        if not card:
            raise NotFoundError("Card not found")
        if card.column_id != column_id:
            raise ScopeChanged(f"card {card_id} left column {column_id}")
        return card, columns

    @staticmethod
    @log_function()
    async def update(
        db: AsyncSession,
        card_id: int,
        changes: Dict[str, Any]
    ) -> Card:
        """Update a card's details.

        ``changes`` holds only the fields the client sent; ``None`` clears an
        optional field. ``is_archived`` takes the card out of (or back into)
        its column's order: archived cards leave a closed gap, unarchived
        ones are appended at the end.
        """
        debug_logger.debug(f"Обновление карточки ID: {card_id}")

        update_data = {key: changes[key] for key in EDITABLE_FIELDS if key in changes}
        if "title" in update_data:
            title = (update_data["title"] or "").strip()
            if not title:
                raise ValidationError("Card title is required")
            update_data["title"] = title
        if "labels" in update_data:
            update_data["labels"] = list(update_data["labels"] or [])
        if "priority" in update_data and update_data["priority"] is None:
            raise ValidationError("Card priority cannot be empty")

        archived = changes.get("is_archived")

        if update_data and archived is None:
            if not await CardService.get_by_id(db, card_id):
                raise NotFoundError("Card not found")
            # Явно устанавливаем updated_at для предотвращения проблем с часовыми поясами
            update_data["updated_at"] = datetime.utcnow().replace(tzinfo=None)
            debug_logger.debug(f"Обновляемые поля карточки {card_id}: {update_data}")
            stmt = update(Card).where(Card.id == card_id).values(**update_data)
            await db.execute(stmt)
            await db.commit()
        elif archived is not None:
            await CardService._set_archived(db, card_id, archived, update_data)

        updated_card = await CardService.get_by_id(db, card_id)
        if not updated_card:
            raise NotFoundError("Card not found")
        debug_logger.info(f"Карточка {card_id} успешно обновлена")
        return updated_card

    @staticmethod
    async def _set_archived(
        db: AsyncSession,
        card_id: int,
        archived: bool,
        update_data: Dict[str, Any]
    ) -> None:
        async def _toggle() -> None:
            card, _ = await CardService._lock_card(db, card_id)
            scope = cards_of(card.column_id)
            values = dict(update_data)

            if archived and not card.is_archived:
                await PositionIndex.remove(db, scope, card.position)
                values["is_archived"] = True
            elif not archived and card.is_archived:
                values["position"] = await PositionIndex.insert(db, scope)
                values["is_archived"] = False

            if values:
                values["updated_at"] = datetime.utcnow().replace(tzinfo=None)
                stmt = (
                    update(Card)
                    .where(Card.id == card_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                await db.execute(stmt)

        await PositionIndex.atomic(db, _toggle)

    @staticmethod
    @log_function()
    async def delete(
        db: AsyncSession,
        card_id: int
    ) -> Card:
        """Delete a card and close its gap; returns the deleted card"""
        debug_logger.debug(f"Удаление карточки ID: {card_id}")

        async def _delete() -> Card:
            card, _ = await CardService._lock_card(db, card_id)
            if not card.is_archived:
                await PositionIndex.remove(db, cards_of(card.column_id), card.position)
            # Комментарии удаляются каскадом в БД
            await db.execute(delete(Card).where(Card.id == card_id))
            return card

        card = await PositionIndex.atomic(db, _delete)
        debug_logger.info(f"Карточка {card_id} успешно удалена")
        return card

    @staticmethod
    @log_function()
    async def reorder_cards(
        db: AsyncSession,
        board_id: int,
        column_id: int,
        card_order: Sequence[int]
    ) -> List[Card]:
        """Set the order of all live cards in a column"""
        debug_logger.debug(f"Изменение порядка карточек в колонке {column_id}: {card_order}")

        async def _reorder() -> None:
            columns = await PositionIndex.lock_columns(db, column_id)
            if columns[column_id].board_id != board_id:
                raise InvalidReferenceError("Column does not belong to this board")
            await PositionIndex.reorder(db, cards_of(column_id), list(card_order))

        await PositionIndex.atomic(db, _reorder)
        debug_logger.info(f"Порядок карточек в колонке {column_id} успешно обновлен")
        return await CardService.get_by_column_id(db, column_id)

    @staticmethod
    @log_function()
    async def move_card(
        db: AsyncSession,
        card_id: int,
        new_column_id: int,
        new_position: int
    ) -> Tuple[Card, int, int]:
        """Move a card to ``new_position`` of a column on the same board.

        Returns the moved card with its previous column id and position.
        """
        debug_logger.debug(f"Перемещение карточки {card_id} в колонку {new_column_id} на позицию {new_position}")
        if new_position < 0:
            raise ValidationError("position must be non-negative")

        async def _move() -> Tuple[int, int]:
            card, columns = await CardService._lock_card(db, card_id, new_column_id)
            if card.is_archived:
                raise ValidationError("Archived cards cannot be moved")
            if columns[new_column_id].board_id != card.board_id:
                raise InvalidReferenceError("Target column does not belong to the card's board")

            old_column_id, old_position = card.column_id, card.position
            if old_column_id == new_column_id:
                await PositionIndex.move_within(
                    db, cards_of(old_column_id), card_id, old_position, new_position
                )
            else:
                await PositionIndex.move_across(
                    db,
                    cards_of(old_column_id),
                    cards_of(new_column_id),
                    card_id,
                    old_position,
                    new_position,
                    column_id=new_column_id
                )
            return old_column_id, old_position

        try:
            old_column_id, old_position = await PositionIndex.atomic(db, _move)
        except ConcurrencyConflictError as e:
            api_logger.error(f"Failed to move card {card_id} to column {new_column_id}: {str(e)}")
            raise

        moved_card = await CardService.get_by_id(db, card_id)
        debug_logger.info(f"Карточка {card_id} успешно перемещена из колонки {old_column_id} в колонку {new_column_id}")
        return moved_card, old_column_id, old_position
