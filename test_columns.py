import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.v1.columns import (
    reorder_columns,
    create_column,
    update_column,
    delete_column
)
from src.core.exceptions import AccessDeniedError, InvalidReferenceError, ValidationError
from src.models.activity import ActivityType
from src.models.column import Column
from src.schemas.auth import CurrentUser
from src.schemas.column import (
    ColumnCreate,
    ColumnUpdate,
    ColumnOrderUpdate
)
from src.services import access_service
from src.services.activity_service import ActivityLog
from src.services.board_service import BoardService
from src.services.column_service import ColumnService


@pytest.fixture
def mock_db():
    return AsyncMock(spec=AsyncSession)


@pytest.fixture
def editor():
    return CurrentUser(id="u1")


@pytest.fixture
def teams():
    return MagicMock()


@pytest.fixture
def activity():
    return AsyncMock(spec=ActivityLog)


@pytest.fixture
def mock_column():
    column = MagicMock(spec=Column)
    column.id = 7
    column.name = "New Column"
    column.board_id = 1
    column.position = 1
    return column


class TestReorderColumns:
    """Тесты для эндпоинта reorder_columns"""

    @pytest.mark.asyncio
    async def test_reorder_columns_success(self, mock_db, editor, teams, activity):
        """Успешное изменение порядка колонок"""
        columns = [MagicMock(spec=Column) for _ in range(3)]
        with patch('src.api.v1.columns.check_board_access') as mock_check_access, \
             patch('src.api.v1.columns.ColumnService.reorder_columns', return_value=columns) as mock_reorder:

            result = await reorder_columns(1, ColumnOrderUpdate(column_ids=[3, 1, 2]), mock_db, editor, teams, activity)

            mock_check_access.assert_called_once()
            assert mock_check_access.call_args.args[:5] == (mock_db, 1, "u1", teams, access_service.can_edit)
            mock_reorder.assert_called_once_with(db=mock_db, board_id=1, column_order=[3, 1, 2])
            activity.append.assert_awaited_once_with(
                1, ActivityType.COLUMN_REORDERED, user_id="u1", details={"column_ids": [3, 1, 2]}
            )
            assert result == columns

    @pytest.mark.asyncio
    async def test_reorder_columns_invalid_ids(self, mock_db, editor, teams, activity):
        """Чужие id в новом порядке"""
        with patch('src.api.v1.columns.check_board_access'), \
             patch('src.api.v1.columns.ColumnService.reorder_columns', side_effect=InvalidReferenceError("foreign")):

            with pytest.raises(InvalidReferenceError):
                await reorder_columns(1, ColumnOrderUpdate(column_ids=[9]), mock_db, editor, teams, activity)

            activity.append.assert_not_called()


class TestCreateColumn:
    """Тесты для эндпоинта create_column"""

    @pytest.mark.asyncio
    async def test_create_column_success(self, mock_db, editor, teams, activity, mock_column):
        """Успешное создание колонки"""
        with patch('src.api.v1.columns.check_board_access') as mock_check_access, \
             patch('src.api.v1.columns.ColumnService.create', return_value=mock_column) as mock_create:

            result = await create_column(
                1, ColumnCreate(name="New Column", position=1), mock_db, editor, teams, activity
            )

            mock_check_access.assert_called_once()
            mock_create.assert_called_once_with(
                db=mock_db,
                board_id=1,
                name="New Column",
                position=1,
                wip_limit=None,
                color=None
            )
            activity.append.assert_awaited_once_with(
                1,
                ActivityType.COLUMN_CREATED,
                user_id="u1",
                details={"column_id": 7, "name": "New Column", "position": 1}
            )
            assert result == mock_column

    @pytest.mark.asyncio
    async def test_create_column_no_access(self, mock_db, editor, teams, activity):
        """Ошибка доступа при создании колонки"""
        with patch('src.api.v1.columns.check_board_access', side_effect=AccessDeniedError()), \
             patch('src.api.v1.columns.ColumnService.create') as mock_create:

            with pytest.raises(AccessDeniedError) as exc_info:
                await create_column(1, ColumnCreate(name="X"), mock_db, editor, teams, activity)

            assert exc_info.value.status_code == 403
            mock_create.assert_not_called()
            activity.append.assert_not_called()


class TestUpdateColumn:
    """Тесты для эндпоинта update_column"""

    @pytest.mark.asyncio
    async def test_update_with_position(self, mock_db, editor, teams, activity, mock_column):
        with patch('src.api.v1.columns.check_board_access'), \
             patch('src.api.v1.columns.ColumnService.update', return_value=mock_column) as mock_update:

            result = await update_column(
                1, 7, ColumnUpdate(name="Renamed", position=0), mock_db, editor, teams, activity
            )

            mock_update.assert_called_once_with(
                db=mock_db,
                board_id=1,
                column_id=7,
                changes={"name": "Renamed", "position": 0}
            )
            activity.append.assert_awaited_once_with(
                1,
                ActivityType.COLUMN_UPDATED,
                user_id="u1",
                details={"column_id": 7, "changes": {"name": "Renamed", "position": 0}}
            )
            assert result == mock_column

    @pytest.mark.asyncio
    async def test_explicit_null_is_passed_through(self, mock_db, editor, teams, activity, mock_column):
        """null в теле запроса снимает лимит WIP"""
        with patch('src.api.v1.columns.check_board_access'), \
             patch('src.api.v1.columns.ColumnService.update', return_value=mock_column) as mock_update:

            await update_column(1, 7, ColumnUpdate(wip_limit=None), mock_db, editor, teams, activity)

            assert mock_update.call_args.kwargs["changes"] == {"wip_limit": None}


class TestColumnLimits:
    """Необязательные поля колонки можно очистить"""

    @pytest.mark.asyncio
    async def test_clear_wip_limit(self, db):
        board = await BoardService.create(db, owner_id="u1", name="B", columns=[{"name": "Doing"}])
        column_id = board.columns[0].id

        column = await ColumnService.update(db, board.id, column_id, {"wip_limit": 3})
        assert column.wip_limit == 3

        column = await ColumnService.update(db, board.id, column_id, {"wip_limit": None})
        assert column.wip_limit is None

    @pytest.mark.asyncio
    async def test_omitted_fields_are_kept(self, db):
        board = await BoardService.create(
            db, owner_id="u1", name="B", columns=[{"name": "Doing", "wip_limit": 2, "color": "#blue"}]
        )
        column_id = board.columns[0].id

        column = await ColumnService.update(db, board.id, column_id, {"name": "In work"})
        assert (column.name, column.wip_limit, column.color) == ("In work", 2, "#blue")

        column = await ColumnService.update(db, board.id, column_id, {"color": None})
        assert column.color == "#gray"

    @pytest.mark.asyncio
    async def test_null_name_is_rejected(self, db):
        board = await BoardService.create(db, owner_id="u1", name="B", columns=[{"name": "Doing"}])

        with pytest.raises(ValidationError):
            await ColumnService.update(db, board.id, board.columns[0].id, {"name": None})


class TestDeleteColumn:
    """Тесты для эндпоинта delete_column"""

    @pytest.mark.asyncio
    async def test_delete_column_success(self, mock_db, editor, teams, activity):
        with patch('src.api.v1.columns.check_board_access'), \
             patch('src.api.v1.columns.ColumnService.delete', return_value="Doing") as mock_delete:

            result = await delete_column(1, 7, mock_db, editor, teams, activity)

            mock_delete.assert_called_once_with(db=mock_db, board_id=1, column_id=7)
            activity.append.assert_awaited_once_with(
                1, ActivityType.COLUMN_DELETED, user_id="u1", details={"column_id": 7, "name": "Doing"}
            )
            assert result is None
