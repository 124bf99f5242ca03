from typing import Any, Dict, List, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete
from sqlalchemy.orm import selectinload
from datetime import datetime

from src.core.exceptions import InvalidReferenceError, NotFoundError, ValidationError
from src.logs import debug_logger, log_function
from src.models.column import Column
from src.models.card import Card
from src.services.position_index import PositionIndex, columns_of

DEFAULT_COLUMN_COLOR = "#gray"
EDITABLE_FIELDS = ("name", "wip_limit", "color")


class ColumnService:
    """CRUD operations service for Column model.

    Every change of column positions runs under the board lock through
    ``PositionIndex.atomic``.
    """

    @staticmethod
    @log_function()
    async def create(
        db: AsyncSession,
        board_id: int,
        name: str,
        position: Optional[int] = None,
        wip_limit: Optional[int] = None,
        color: Optional[str] = None
    ) -> Column:
        """Create a column at ``position`` (default: last)"""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Column name is required")

        async def _create() -> int:
            await PositionIndex.lock_board(db, board_id)
            new_position = await PositionIndex.insert(db, columns_of(board_id), position)
            column = Column(
                board_id=board_id,
                name=name,
                position=new_position,
                wip_limit=wip_limit,
                color=color or DEFAULT_COLUMN_COLOR
            )
            db.add(column)
            await db.flush()
            return column.id

        column_id = await PositionIndex.atomic(db, _create)
        debug_logger.info(f"Создана колонка: ID {column_id}, на доске {board_id}")
        return await ColumnService.get_by_id(db, column_id, load_cards=True)

    @staticmethod
    async def get_by_id(
        db: AsyncSession,
        column_id: int,
        load_cards: bool = False
    ) -> Optional[Column]:
        """Get column by id, optionally with its live cards"""
        query = (
            select(Column)
            .where(Column.id == column_id)
            .execution_options(populate_existing=True)
        )

        if load_cards:
            query = query.options(
                selectinload(Column.cards.and_(Card.is_archived.is_(False)))
            )

        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    async def get_in_board(
        db: AsyncSession,
        board_id: int,
        column_id: int
    ) -> Column:
        """Get a column addressed through its board"""
        column = await ColumnService.get_by_id(db, column_id)
        if not column:
            raise NotFoundError("Column not found")
        if column.board_id != board_id:
            raise InvalidReferenceError("Column does not belong to this board")
        return column

    @staticmethod
    async def get_by_board_id(
        db: AsyncSession,
        board_id: int
    ) -> List[Column]:
        """Get all columns for a board in order, with their live cards"""
        query = (
            select(Column)
            .where(Column.board_id == board_id)
            .order_by(Column.position)
            .options(selectinload(Column.cards.and_(Card.is_archived.is_(False))))
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    @log_function()
    async def update(
        db: AsyncSession,
        board_id: int,
        column_id: int,
        changes: Dict[str, Any]
    ) -> Column:
        """Update a column's details; a new ``position`` moves it within the board.

        ``changes`` holds only the fields the client sent: ``wip_limit=None``
        removes the limit, ``color=None`` restores the default color.
        """
        update_data = {key: changes[key] for key in EDITABLE_FIELDS if key in changes}
        if "name" in update_data:
            name = (update_data["name"] or "").strip()
            if not name:
                raise ValidationError("Column name is required")
            update_data["name"] = name
        if "color" in update_data:
            update_data["color"] = update_data["color"] or DEFAULT_COLUMN_COLOR
        position = changes.get("position")

        if position is None:
            await ColumnService.get_in_board(db, board_id, column_id)
            if update_data:
                # Явно устанавливаем updated_at для предотвращения проблем с часовыми поясами
                update_data["updated_at"] = datetime.utcnow().replace(tzinfo=None)
                stmt = update(Column).where(Column.id == column_id).values(**update_data)
                await db.execute(stmt)
                await db.commit()
            return await ColumnService.get_by_id(db, column_id, load_cards=True)

        async def _update() -> None:
            await PositionIndex.lock_board(db, board_id)
            column = await ColumnService.get_in_board(db, board_id, column_id)
            await PositionIndex.move_within(
                db, columns_of(board_id), column_id, column.position, position
            )
            if update_data:
                stmt = update(Column).where(Column.id == column_id).values(
                    updated_at=datetime.utcnow().replace(tzinfo=None), **update_data
                )
                await db.execute(stmt)

        await PositionIndex.atomic(db, _update)
        return await ColumnService.get_by_id(db, column_id, load_cards=True)

    @staticmethod
    @log_function()
    async def delete(
        db: AsyncSession,
        board_id: int,
        column_id: int
    ) -> str:
        """Delete a column with its cards and close the gap it leaves.

        Returns the deleted column's name.
        """
        async def _delete() -> str:
            await PositionIndex.lock_board(db, board_id)
            column = await ColumnService.get_in_board(db, board_id, column_id)
            name, position = column.name, column.position
            # Карточки и их комментарии удаляются каскадом в БД
            await db.execute(delete(Column).where(Column.id == column_id))
            await PositionIndex.remove(db, columns_of(board_id), position)
            return name

        return await PositionIndex.atomic(db, _delete)

    @staticmethod
    @log_function()
    async def reorder_columns(
        db: AsyncSession,
        board_id: int,
        column_order: Sequence[int]
    ) -> List[Column]:
        """Reorder columns in a board

        Args:
            db: Database session
            board_id: ID of the board
            column_order: every column ID of the board, in the desired order

        Returns:
            The board's columns in their new order
        """
        async def _reorder() -> None:
            await PositionIndex.lock_board(db, board_id)
            await PositionIndex.reorder(db, columns_of(board_id), list(column_order))

        await PositionIndex.atomic(db, _reorder)
        return await ColumnService.get_by_board_id(db, board_id)
