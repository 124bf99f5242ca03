import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies.permissions import check_board_access
from src.core.exceptions import AccessDeniedError, NotFoundError
from src.models.board import Board, BoardRole, BoardType
from src.services import access_service
from src.services.access_service import AccessService


def member_row(role):
    """Результат запроса роли участника"""
    result = MagicMock()
    result.scalar.return_value = role
    return result


class TestRolePredicates:
    """Права ролей"""

    @pytest.mark.parametrize("role, can_edit, owner_only", [
        (BoardRole.OWNER, True, True),
        (BoardRole.EDITOR, True, False),
        (BoardRole.VIEWER, False, False),
    ])
    def test_role_matrix(self, role, can_edit, owner_only):
        assert access_service.can_view(role) is True
        assert access_service.can_edit(role) is can_edit
        assert access_service.can_modify_board_settings(role) is can_edit
        assert access_service.can_delete(role) is owner_only
        assert access_service.can_archive_board(role) is owner_only
        assert access_service.can_manage_members(role) is owner_only

    def test_no_access_cannot_view(self):
        assert access_service.can_view(None) is False

    def test_comment_deletion(self):
        assert access_service.can_delete_comment(BoardRole.OWNER, "author", "owner") is True
        assert access_service.can_delete_comment(BoardRole.EDITOR, "author", "author") is True
        assert access_service.can_delete_comment(BoardRole.EDITOR, "author", "other") is False
        assert access_service.can_delete_attachment(BoardRole.VIEWER, "me", "me") is True

    def test_permission_map(self):
        permissions = access_service.get_role_permissions(BoardRole.EDITOR)

        assert permissions["can_edit"] is True
        assert permissions["can_comment"] is True
        assert permissions["can_manage_members"] is False
        assert permissions["can_archive"] is False


class TestResolveRole:
    """Порядок правил: владелец, явная роль, команда"""

    def setup_method(self):
        self.mock_db = AsyncMock(spec=AsyncSession)
        self.teams = MagicMock()
        self.teams.is_member = AsyncMock(return_value=False)
        self.board = Board(id=1, name="B", owner_id="owner", type=BoardType.PERSONAL)

    @pytest.mark.asyncio
    async def test_owner_wins_over_member_row(self):
        self.mock_db.execute.return_value = member_row(BoardRole.VIEWER)

        role = await AccessService.resolve_role(self.mock_db, self.board, "owner", self.teams)

        assert role == BoardRole.OWNER
        self.mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_explicit_member(self):
        self.mock_db.execute.return_value = member_row("editor")

        role = await AccessService.resolve_role(self.mock_db, self.board, "u2", self.teams)

        assert role == BoardRole.EDITOR

    @pytest.mark.asyncio
    async def test_explicit_role_wins_over_team(self):
        self.board.type = BoardType.TEAM
        self.board.team_id = "t1"
        self.teams.is_member.return_value = True
        self.mock_db.execute.return_value = member_row(BoardRole.VIEWER)

        role = await AccessService.resolve_role(self.mock_db, self.board, "u2", self.teams)

        assert role == BoardRole.VIEWER
        self.teams.is_member.assert_not_called()

    @pytest.mark.asyncio
    async def test_team_member_is_editor(self):
        self.board.type = BoardType.TEAM
        self.board.team_id = "t1"
        self.teams.is_member.return_value = True
        self.mock_db.execute.return_value = member_row(None)

        role = await AccessService.resolve_role(self.mock_db, self.board, "u2", self.teams)

        assert role == BoardRole.EDITOR
        self.teams.is_member.assert_awaited_once_with("t1", "u2")

    @pytest.mark.asyncio
    async def test_team_of_personal_board_is_ignored(self):
        self.board.team_id = "t1"
        self.teams.is_member.return_value = True
        self.mock_db.execute.return_value = member_row(None)

        assert await AccessService.resolve_role(self.mock_db, self.board, "u2", self.teams) is None

    @pytest.mark.asyncio
    async def test_stranger_has_no_access(self):
        self.board.type = BoardType.TEAM
        self.board.team_id = "t1"
        self.mock_db.execute.return_value = member_row(None)

        assert await AccessService.resolve_role(self.mock_db, self.board, "u9", self.teams) is None


class TestCheckBoardAccess:
    """Тесты для функции check_board_access"""

    @pytest.fixture
    def mock_db(self):
        return AsyncMock(spec=AsyncSession)

    @pytest.fixture
    def mock_board(self):
        board = MagicMock(spec=Board)
        board.id = 1
        return board

    @pytest.mark.asyncio
    async def test_missing_board(self, mock_db):
        with patch('src.api.dependencies.permissions.BoardService.get_by_id', return_value=None):
            with pytest.raises(NotFoundError) as exc_info:
                await check_board_access(mock_db, 999, "u1", MagicMock())

        assert "Board not found" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_no_access(self, mock_db, mock_board):
        with patch('src.api.dependencies.permissions.BoardService.get_by_id', return_value=mock_board), \
             patch('src.api.dependencies.permissions.AccessService.resolve_role', return_value=None):
            with pytest.raises(AccessDeniedError) as exc_info:
                await check_board_access(mock_db, 1, "u1", MagicMock())

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_predicate_fails(self, mock_db, mock_board):
        with patch('src.api.dependencies.permissions.BoardService.get_by_id', return_value=mock_board), \
             patch('src.api.dependencies.permissions.AccessService.resolve_role', return_value=BoardRole.VIEWER):
            with pytest.raises(AccessDeniedError) as exc_info:
                await check_board_access(
                    mock_db, 1, "u1", MagicMock(), access_service.can_edit, "Editing is not allowed"
                )

        assert exc_info.value.detail == "Editing is not allowed: viewer"

    @pytest.mark.asyncio
    async def test_allowed(self, mock_db, mock_board):
        with patch('src.api.dependencies.permissions.BoardService.get_by_id', return_value=mock_board), \
             patch('src.api.dependencies.permissions.AccessService.resolve_role', return_value=BoardRole.EDITOR):
            board, role = await check_board_access(mock_db, 1, "u1", MagicMock(), access_service.can_edit)

        assert board is mock_board
        assert role == BoardRole.EDITOR
