from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.board import Board, BoardMember, BoardRole, BoardType
from src.services.team_service import TeamDirectory


def can_view(role: BoardRole) -> bool:
    # Любая разрешённая роль может смотреть доску
    return role is not None


def can_edit(role: BoardRole) -> bool:
    """Columns, cards, comments: create, update, move, delete"""
    return role in (BoardRole.OWNER, BoardRole.EDITOR)


def can_delete(role: BoardRole) -> bool:
    return role == BoardRole.OWNER


def can_archive_board(role: BoardRole) -> bool:
    return role == BoardRole.OWNER


def can_manage_members(role: BoardRole) -> bool:
    return role == BoardRole.OWNER


def can_modify_board_settings(role: BoardRole) -> bool:
    """Name, description, background color. Archiving is owner-only."""
    return role in (BoardRole.OWNER, BoardRole.EDITOR)


def can_delete_comment(role: BoardRole, author_id: str, caller_id: str) -> bool:
    return role == BoardRole.OWNER or author_id == caller_id


def can_delete_attachment(role: BoardRole, uploader_id: str, caller_id: str) -> bool:
    return role == BoardRole.OWNER or uploader_id == caller_id


def get_role_permissions(role: BoardRole) -> Dict[str, bool]:
    """Permission flags for the UI"""
    return {
        "can_view": can_view(role),
        "can_edit": can_edit(role),
        "can_delete": can_delete(role),
        "can_manage_members": can_manage_members(role),
        "can_archive": can_archive_board(role),
        "can_modify_settings": can_modify_board_settings(role),
        "can_comment": can_edit(role),
    }


class AccessService:
    """Resolves a caller's role on a board"""

    @staticmethod
    async def resolve_role(
        db: AsyncSession,
        board: Board,
        user_id: str,
        teams: TeamDirectory
    ) -> Optional[BoardRole]:
        """Get the caller's role on a board.

        The first matching rule wins, grants are never merged:

        1. the board creator is always owner;
        2. an explicit member row gives its stored role;
        3. a member of the board's team gets an implicit editor role;
        4. otherwise there is no access (None).
        """
        if board.owner_id == user_id:
            return BoardRole.OWNER

        query = select(BoardMember.role).where(
            BoardMember.board_id == board.id,
            BoardMember.user_id == user_id
        )
        result = await db.execute(query)
        role = result.scalar()
        if role is not None:
            return BoardRole(role)

        if board.type == BoardType.TEAM and board.team_id:
            if await teams.is_member(board.team_id, user_id):
                return BoardRole.EDITOR

        return None
