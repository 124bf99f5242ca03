import pytest
from unittest.mock import AsyncMock
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from src.core.exceptions import ConcurrencyConflictError, InvalidReferenceError, ValidationError
from src.models.card import Card
from src.models.column import Column
from src.services.board_service import BoardService
from src.services.card_service import CardService
from src.services.column_service import ColumnService
from src.services.position_index import PositionIndex, ScopeChanged, cards_of, columns_of, is_lock_contention


async def make_board(db, layout):
    """Board whose columns and cards are given as [(column, [card titles])]"""
    board = await BoardService.create(
        db,
        owner_id="owner",
        name="Board",
        columns=[
            {"name": name, "cards": [{"title": title} for title in titles]}
            for name, titles in layout
        ],
    )
    columns = {column.name: column.id for column in board.columns}
    result = await db.execute(select(Card.title, Card.id).where(Card.board_id == board.id))
    cards = dict(result.all())
    return board.id, columns, cards


async def column_titles(db, column_id):
    cards = await CardService.get_by_column_id(db, column_id)
    assert [card.position for card in cards] == list(range(len(cards)))
    return [card.title for card in cards]


async def board_columns(db, board_id):
    columns = await ColumnService.get_by_board_id(db, board_id)
    assert [column.position for column in columns] == list(range(len(columns)))
    return [column.name for column in columns]


class TestCardMoves:
    """Перемещение карточек сохраняет плотные позиции 0..N-1"""

    @pytest.mark.asyncio
    async def test_move_to_another_column(self, db):
        _, columns, cards = await make_board(db, [("A", ["a0", "a1", "a2"]), ("B", ["b0", "b1"])])

        card, from_column, from_position = await CardService.move_card(db, cards["a1"], columns["B"], 1)

        assert (card.column_id, card.position) == (columns["B"], 1)
        assert (from_column, from_position) == (columns["A"], 1)
        assert await column_titles(db, columns["A"]) == ["a0", "a2"]
        assert await column_titles(db, columns["B"]) == ["b0", "a1", "b1"]

    @pytest.mark.asyncio
    async def test_move_to_end_of_another_column(self, db):
        _, columns, cards = await make_board(db, [("A", ["a0", "a1"]), ("B", ["b0", "b1"])])

        await CardService.move_card(db, cards["a0"], columns["B"], 2)

        assert await column_titles(db, columns["A"]) == ["a1"]
        assert await column_titles(db, columns["B"]) == ["b0", "b1", "a0"]

    @pytest.mark.asyncio
    async def test_move_later_in_same_column(self, db):
        _, columns, cards = await make_board(db, [("C", ["c0", "c1", "c2", "c3"])])

        await CardService.move_card(db, cards["c0"], columns["C"], 2)

        assert await column_titles(db, columns["C"]) == ["c1", "c2", "c0", "c3"]

    @pytest.mark.asyncio
    async def test_move_earlier_in_same_column(self, db):
        _, columns, cards = await make_board(db, [("C", ["c0", "c1", "c2", "c3"])])

        await CardService.move_card(db, cards["c3"], columns["C"], 1)

        assert await column_titles(db, columns["C"]) == ["c0", "c3", "c1", "c2"]

    @pytest.mark.asyncio
    async def test_move_to_same_position_changes_nothing(self, db):
        _, columns, cards = await make_board(db, [("C", ["c0", "c1", "c2"])])
        before = {card.id: card.updated_at for card in await CardService.get_by_column_id(db, columns["C"])}

        await CardService.move_card(db, cards["c1"], columns["C"], 1)

        after = {card.id: card.updated_at for card in await CardService.get_by_column_id(db, columns["C"])}
        assert after == before
        assert await column_titles(db, columns["C"]) == ["c0", "c1", "c2"]

    @pytest.mark.asyncio
    async def test_move_past_the_end_is_rejected(self, db):
        _, columns, cards = await make_board(db, [("A", ["a0"]), ("B", ["b0", "b1"])])

        with pytest.raises(ValidationError):
            await CardService.move_card(db, cards["a0"], columns["B"], 3)
        with pytest.raises(ValidationError):
            await CardService.move_card(db, cards["b0"], columns["B"], 2)

        assert await column_titles(db, columns["A"]) == ["a0"]
        assert await column_titles(db, columns["B"]) == ["b0", "b1"]

    @pytest.mark.asyncio
    async def test_move_to_column_of_another_board(self, db):
        _, _, cards = await make_board(db, [("A", ["a0"])])
        _, other_columns, _ = await make_board(db, [("X", [])])

        with pytest.raises(InvalidReferenceError):
            await CardService.move_card(db, cards["a0"], other_columns["X"], 0)

    @pytest.mark.asyncio
    async def test_archived_card_cannot_move(self, db):
        _, columns, cards = await make_board(db, [("A", ["a0", "a1"]), ("B", [])])
        await CardService.update(db, cards["a0"], {"is_archived": True})

        with pytest.raises(ValidationError):
            await CardService.move_card(db, cards["a0"], columns["B"], 0)


class TestCardScope:
    """Создание, архивирование и удаление карточек"""

    @pytest.mark.asyncio
    async def test_insert_shifts_later_cards(self, db):
        board_id, columns, _ = await make_board(db, [("A", ["a0", "a1"])])

        card = await CardService.create(db, board_id, columns["A"], "new", created_by="owner", position=1)

        assert card.position == 1
        assert await column_titles(db, columns["A"]) == ["a0", "new", "a1"]

    @pytest.mark.asyncio
    async def test_insert_out_of_range(self, db):
        board_id, columns, _ = await make_board(db, [("A", ["a0"])])

        with pytest.raises(ValidationError):
            await CardService.create(db, board_id, columns["A"], "new", created_by="owner", position=2)

        assert await column_titles(db, columns["A"]) == ["a0"]

    @pytest.mark.asyncio
    async def test_create_in_column_of_another_board(self, db):
        board_id, _, _ = await make_board(db, [("A", [])])
        _, other_columns, _ = await make_board(db, [("X", [])])

        with pytest.raises(InvalidReferenceError):
            await CardService.create(db, board_id, other_columns["X"], "new", created_by="owner")

    @pytest.mark.asyncio
    async def test_archive_closes_gap_and_unarchive_appends(self, db):
        board_id, columns, cards = await make_board(db, [("A", ["a0", "a1", "a2"])])

        await CardService.update(db, cards["a0"], {"is_archived": True})
        assert await column_titles(db, columns["A"]) == ["a1", "a2"]

        # Новая карточка встаёт в конец живых, а не после max(position)
        card = await CardService.create(db, board_id, columns["A"], "a3", created_by="owner")
        assert card.position == 2

        restored = await CardService.update(db, cards["a0"], {"is_archived": False})
        assert restored.position == 3
        assert await column_titles(db, columns["A"]) == ["a1", "a2", "a3", "a0"]

    @pytest.mark.asyncio
    async def test_delete_closes_gap(self, db):
        _, columns, cards = await make_board(db, [("A", ["a0", "a1", "a2"])])

        deleted = await CardService.delete(db, cards["a1"])

        assert deleted.title == "a1"
        assert await column_titles(db, columns["A"]) == ["a0", "a2"]

    @pytest.mark.asyncio
    async def test_reorder_round_trip(self, db):
        board_id, columns, cards = await make_board(db, [("A", ["a0", "a1", "a2"])])
        original = [cards["a0"], cards["a1"], cards["a2"]]

        reordered = await CardService.reorder_cards(db, board_id, columns["A"], list(reversed(original)))
        assert [card.title for card in reordered] == ["a2", "a1", "a0"]

        await CardService.reorder_cards(db, board_id, columns["A"], original)
        assert await column_titles(db, columns["A"]) == ["a0", "a1", "a2"]

    @pytest.mark.asyncio
    async def test_reorder_rejects_bad_lists(self, db):
        board_id, columns, cards = await make_board(db, [("A", ["a0", "a1"]), ("B", ["b0"])])

        with pytest.raises(ValidationError):
            await CardService.reorder_cards(db, board_id, columns["A"], [cards["a0"], cards["a0"]])
        with pytest.raises(ValidationError):
            await CardService.reorder_cards(db, board_id, columns["A"], [cards["a1"]])
        with pytest.raises(InvalidReferenceError):
            await CardService.reorder_cards(db, board_id, columns["A"], [cards["a1"], cards["b0"]])

        assert await column_titles(db, columns["A"]) == ["a0", "a1"]


class TestColumnScope:
    """Порядок колонок доски"""

    @pytest.mark.asyncio
    async def test_insert_at_front(self, db):
        board_id, _, _ = await make_board(db, [("X", []), ("Y", [])])

        column = await ColumnService.create(db, board_id, "New", position=0)

        assert column.position == 0
        assert await board_columns(db, board_id) == ["New", "X", "Y"]

    @pytest.mark.asyncio
    async def test_move_column(self, db):
        board_id, columns, _ = await make_board(db, [("X", []), ("Y", []), ("Z", [])])

        column = await ColumnService.update(db, board_id, columns["X"], {"name": "X2", "position": 2})

        assert (column.name, column.position) == ("X2", 2)
        assert await board_columns(db, board_id) == ["Y", "Z", "X2"]

    @pytest.mark.asyncio
    async def test_delete_column_cascades_and_renumbers(self, db):
        board_id, columns, cards = await make_board(
            db, [("X", ["x0", "x1"]), ("Y", ["y0", "y1"]), ("Z", ["z0"])]
        )

        name = await ColumnService.delete(db, board_id, columns["Y"])

        assert name == "Y"
        assert await board_columns(db, board_id) == ["X", "Z"]
        result = await db.execute(select(Card).where(Card.id.in_([cards["y0"], cards["y1"]])))
        assert result.scalars().all() == []
        assert await column_titles(db, columns["X"]) == ["x0", "x1"]
        assert await column_titles(db, columns["Z"]) == ["z0"]

    @pytest.mark.asyncio
    async def test_reorder_columns(self, db):
        board_id, columns, _ = await make_board(db, [("X", []), ("Y", []), ("Z", [])])

        reordered = await ColumnService.reorder_columns(
            db, board_id, [columns["Z"], columns["X"], columns["Y"]]
        )

        assert [column.name for column in reordered] == ["Z", "X", "Y"]
        assert [column.position for column in reordered] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_reorder_columns_of_another_board(self, db):
        board_id, columns, _ = await make_board(db, [("X", [])])
        _, other_columns, _ = await make_board(db, [("Q", [])])

        with pytest.raises(InvalidReferenceError):
            await ColumnService.reorder_columns(db, board_id, [other_columns["Q"]])
        assert await board_columns(db, board_id) == ["X"]


class TestPositionIndexPrimitives:
    """Низкоуровневые операции без сервисов"""

    @pytest.mark.asyncio
    async def test_size_ignores_archived_cards(self, db):
        _, columns, cards = await make_board(db, [("A", ["a0", "a1"])])
        await CardService.update(db, cards["a1"], {"is_archived": True})

        assert await PositionIndex.size(db, cards_of(columns["A"])) == 1

    @pytest.mark.asyncio
    async def test_columns_scope_size(self, db):
        board_id, _, _ = await make_board(db, [("X", []), ("Y", [])])

        assert await PositionIndex.size(db, columns_of(board_id)) == 2


class TestAtomic:
    """Повторы при конфликте блокировок"""

    @pytest.mark.asyncio
    async def test_retries_lock_contention(self, db):
        locked = OperationalError("UPDATE kanban_cards", {}, Exception("database is locked"))
        operation = AsyncMock(side_effect=[locked, "done"])

        result = await PositionIndex.atomic(db, operation, retries=3)

        assert result == "done"
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_retries_when_scope_changed(self, db):
        operation = AsyncMock(side_effect=[ScopeChanged("moved"), 42])

        assert await PositionIndex.atomic(db, operation, retries=2) == 42

    @pytest.mark.asyncio
    async def test_gives_up_with_conflict(self, db):
        locked = OperationalError("UPDATE kanban_cards", {}, Exception("database is locked"))
        operation = AsyncMock(side_effect=locked)

        with pytest.raises(ConcurrencyConflictError):
            await PositionIndex.atomic(db, operation, retries=2)
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_other_database_errors_are_not_retried(self, db):
        duplicate = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
        operation = AsyncMock(side_effect=duplicate)

        with pytest.raises(IntegrityError):
            await PositionIndex.atomic(db, operation, retries=3)
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_lost_connection_is_not_a_conflict(self, db):
        dropped = OperationalError("UPDATE kanban_cards", {}, Exception("server closed the connection unexpectedly"))
        operation = AsyncMock(side_effect=dropped)

        with pytest.raises(OperationalError):
            await PositionIndex.atomic(db, operation, retries=3)
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_domain_errors_roll_back(self, db):
        board_id, _, _ = await make_board(db, [("X", [])])

        async def _fail():
            db.add(Column(board_id=board_id, name="ghost", position=1))
            await db.flush()
            raise ValidationError("nope")

        with pytest.raises(ValidationError):
            await PositionIndex.atomic(db, _fail)
        assert await board_columns(db, board_id) == ["X"]


class LockError(Exception):
    def __init__(self, sqlstate):
        super().__init__(f"sqlstate {sqlstate}")
        self.sqlstate = sqlstate


class TestLockContention:
    """Какие ошибки БД считаются конфликтом блокировок"""

    @pytest.mark.parametrize("sqlstate", ["40P01", "55P03", "40001"])
    def test_transient_sqlstates(self, sqlstate):
        assert is_lock_contention(OperationalError("UPDATE", {}, LockError(sqlstate))) is True
        assert is_lock_contention(DBAPIError("UPDATE", {}, LockError(sqlstate))) is True

    def test_sqlite_busy(self):
        assert is_lock_contention(OperationalError("UPDATE", {}, Exception("database is locked"))) is True

    @pytest.mark.parametrize("sqlstate", ["08006", "57P01", "23505"])
    def test_other_failures(self, sqlstate):
        assert is_lock_contention(OperationalError("UPDATE", {}, LockError(sqlstate))) is False

    def test_operational_error_without_code(self):
        assert is_lock_contention(OperationalError("UPDATE", {}, Exception("disk I/O error"))) is False
