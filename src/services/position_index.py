"""Dense positional ordering of columns and cards.

A *scope* is a sibling set whose ``position`` values must always be exactly
``0..N-1``: all columns of one board, or the non-archived cards of one
column. Every operation here touches only the rows whose position actually
changes; a full rewrite happens only for an explicit reorder.

Position changes are read-shift-write sequences and must not interleave for
the same scope. Callers run them through :meth:`PositionIndex.atomic` after
taking the scope lock (:meth:`PositionIndex.lock_board` for the column scope,
:meth:`PositionIndex.lock_columns` for card scopes).
"""
import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy import func, select, text, update
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core import get_settings
from src.core.exceptions import (
    ConcurrencyConflictError,
    InvalidReferenceError,
    NotFoundError,
    ValidationError,
)
from src.logs import api_logger, debug_logger
from src.models.board import Board
from src.models.card import Card
from src.models.column import Column

settings = get_settings()

# PostgreSQL: deadlock_detected, lock_not_available, serialization_failure
TRANSIENT_SQLSTATES = {"40P01", "55P03", "40001"}

T = TypeVar("T")


class ScopeChanged(Exception):
    """The row moved to another scope between the first read and the lock"""


@dataclass(frozen=True)
class Scope:
    model: Any
    criteria: Tuple[Any, ...]
    label: str


def columns_of(board_id: int) -> Scope:
    return Scope(Column, (Column.board_id == board_id,), f"board {board_id}")


def cards_of(column_id: int) -> Scope:
    # Архивные карточки в порядке не участвуют
    return Scope(
        Card,
        (Card.column_id == column_id, Card.is_archived.is_(False)),
        f"column {column_id}",
    )


def is_lock_contention(exc: DBAPIError) -> bool:
    orig = getattr(exc, "orig", None)
    if isinstance(exc, OperationalError) and "database is locked" in str(orig):
        return True
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    return code in TRANSIENT_SQLSTATES


class PositionIndex:
    """Ordering engine for column and card scopes"""

    @staticmethod
    async def atomic(
        db: AsyncSession,
        operation: Callable[[], Awaitable[T]],
        retries: Optional[int] = None
    ) -> T:
        """Run ``operation`` as one transaction, retrying on lock contention.

        ``operation`` must re-read everything it needs: after a rollback all
        ORM instances in the session are expired, so closures should capture
        ids, not loaded objects.

        Raises:
            ConcurrencyConflictError: contention persisted through every retry
        """
        attempts = retries or settings.POSITION_LOCK_RETRIES
        for attempt in range(1, attempts + 1):
            try:
                await PositionIndex._bound_lock_wait(db)
                result = await operation()
                await db.commit()
                return result
            except (ScopeChanged, DBAPIError) as e:
                await db.rollback()
                if isinstance(e, DBAPIError) and not is_lock_contention(e):
                    raise
                debug_logger.warning(
                    f"Конфликт блокировки позиций (попытка {attempt}/{attempts}): {e}"
                )
                if attempt == attempts:
                    api_logger.error(f"Position scope contention after {attempts} attempts: {e}")
                    raise ConcurrencyConflictError() from e
                await asyncio.sleep(settings.POSITION_RETRY_BACKOFF_MS * attempt / 1000)
            except Exception:
                await db.rollback()
                raise

    @staticmethod
    async def _bound_lock_wait(db: AsyncSession) -> None:
        bind = db.bind
        if bind is not None and bind.dialect.name == "postgresql":
            timeout = int(settings.POSITION_LOCK_TIMEOUT_MS)
            await db.execute(text(f"SET LOCAL lock_timeout = '{timeout}ms'"))

    @staticmethod
    async def lock_board(db: AsyncSession, board_id: int) -> Board:
        """Lock the column scope of a board"""
        query = (
            select(Board)
            .where(Board.id == board_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        board = result.scalars().first()
        if not board:
            raise NotFoundError("Board not found")
        return board

    @staticmethod
    async def lock_columns(db: AsyncSession, *column_ids: int) -> Dict[int, Column]:
        """Lock the card scopes of one or more columns, in id order"""
        ids = sorted(set(column_ids))
        query = (
            select(Column)
            .where(Column.id.in_(ids))
            .order_by(Column.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        columns = {column.id: column for column in result.scalars().all()}
        if len(columns) != len(ids):
            raise NotFoundError("Column not found")
        return columns

    @staticmethod
    async def size(db: AsyncSession, scope: Scope) -> int:
        query = select(func.count()).select_from(scope.model).where(*scope.criteria)
        result = await db.execute(query)
        return result.scalar_one()

    @staticmethod
    async def _shift(db: AsyncSession, scope: Scope, delta: int, *conditions) -> None:
        model = scope.model
        stmt = (
            update(model)
            .where(*scope.criteria, *conditions)
            .values(position=model.position + delta, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        await db.execute(stmt)

    @staticmethod
    async def _place(db: AsyncSession, model: Any, item_id: int, position: int, **values) -> None:
        stmt = (
            update(model)
            .where(model.id == item_id)
            .values(position=position, updated_at=datetime.utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        await db.execute(stmt)

    @staticmethod
    async def insert(db: AsyncSession, scope: Scope, position: Optional[int] = None) -> int:
        """Open a slot for a new member and return its position.

        ``position`` defaults to the end of the scope. Members at or after the
        slot shift up by one.
        """
        size = await PositionIndex.size(db, scope)
        if position is None:
            return size
        if not 0 <= position <= size:
            raise ValidationError(f"position must be between 0 and {size}")
        if position < size:
            await PositionIndex._shift(db, scope, 1, scope.model.position >= position)
        return position

    @staticmethod
    async def remove(db: AsyncSession, scope: Scope, position: int) -> None:
        """Close the slot left by a member that is leaving the scope"""
        await PositionIndex._shift(db, scope, -1, scope.model.position > position)

    @staticmethod
    async def move_within(db: AsyncSession, scope: Scope, item_id: int, src: int, dst: int) -> bool:
        """Move a member inside its scope; returns False for a no-op.

        Only the closed range between ``src`` and ``dst`` is rotated.
        """
        size = await PositionIndex.size(db, scope)
        if not 0 <= dst < size:
            raise ValidationError(f"position must be between 0 and {size - 1}")
        if src == dst:
            return False

        position = scope.model.position
        if src < dst:
            await PositionIndex._shift(db, scope, -1, position > src, position <= dst)
        else:
            await PositionIndex._shift(db, scope, 1, position >= dst, position < src)
        await PositionIndex._place(db, scope.model, item_id, dst)
        return True

    @staticmethod
    async def move_across(
        db: AsyncSession,
        source: Scope,
        target: Scope,
        item_id: int,
        src: int,
        dst: int,
        **values
    ) -> None:
        """Move a member from one scope into another.

        ``values`` reassign the member's scope (e.g. ``column_id``). ``dst``
        is checked against the target size before insertion.
        """
        size = await PositionIndex.size(db, target)
        if not 0 <= dst <= size:
            raise ValidationError(f"position must be between 0 and {size}")

        await PositionIndex.remove(db, source, src)
        if dst < size:
            await PositionIndex._shift(db, target, 1, target.model.position >= dst)
        await PositionIndex._place(db, target.model, item_id, dst, **values)

    @staticmethod
    async def reorder(db: AsyncSession, scope: Scope, ordered_ids: Sequence[int]) -> None:
        """Assign position = index for an explicit full ordering of the scope.

        Everything is validated before the first write.
        """
        result = await db.execute(select(scope.model.id).where(*scope.criteria))
        current = set(result.scalars().all())

        if len(set(ordered_ids)) != len(ordered_ids):
            raise ValidationError("Duplicate ids in the requested order")
        unknown: List[int] = [item_id for item_id in ordered_ids if item_id not in current]
        if unknown:
            raise InvalidReferenceError(f"Ids {unknown} do not belong to {scope.label}")
        if len(ordered_ids) != len(current):
            raise ValidationError(f"The requested order must list all {len(current)} items of {scope.label}")

        for position, item_id in enumerate(ordered_ids):
            await PositionIndex._place(db, scope.model, item_id, position)
