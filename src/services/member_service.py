from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError

from src.core.exceptions import NotFoundError, ValidationError
from src.logs import debug_logger
from src.models.board import Board, BoardMember, BoardRole


class MemberService:
    """Explicit board access grants"""

    @staticmethod
    async def get_members(
        db: AsyncSession,
        board_id: int
    ) -> List[BoardMember]:
        query = (
            select(BoardMember)
            .where(BoardMember.board_id == board_id)
            .order_by(BoardMember.added_at, BoardMember.id)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def get_member(
        db: AsyncSession,
        board_id: int,
        user_id: str
    ) -> Optional[BoardMember]:
        query = (
            select(BoardMember)
            .where(BoardMember.board_id == board_id, BoardMember.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    async def add_member(
        db: AsyncSession,
        board: Board,
        user_id: str,
        role: BoardRole = BoardRole.VIEWER
    ) -> BoardMember:
        """Grant a user access to a board"""
        if role == BoardRole.OWNER or user_id == board.owner_id:
            raise ValidationError("A board has exactly one owner, its creator")
        if await MemberService.get_member(db, board.id, user_id):
            raise ValidationError("User is already a member of this board")

        member = BoardMember(board_id=board.id, user_id=user_id, role=role)
        db.add(member)
        try:
            await db.commit()
        except IntegrityError:
            # Параллельное добавление того же пользователя
            await db.rollback()
            raise ValidationError("User is already a member of this board")

        debug_logger.info(f"Пользователь {user_id} добавлен на доску {board.id} с ролью {role.value}")
        return member

    @staticmethod
    async def change_role(
        db: AsyncSession,
        board: Board,
        user_id: str,
        role: BoardRole
    ) -> BoardMember:
        """Change a member's role; returns the member with the new role"""
        if role == BoardRole.OWNER or user_id == board.owner_id:
            raise ValidationError("The owner's role cannot be changed or granted")
        member = await MemberService.get_member(db, board.id, user_id)
        if not member:
            raise NotFoundError("Member not found")

        member.role = role
        await db.commit()
        return member

    @staticmethod
    async def remove_member(
        db: AsyncSession,
        board: Board,
        user_id: str
    ) -> None:
        if user_id == board.owner_id:
            raise ValidationError("The board owner cannot be removed")
        stmt = delete(BoardMember).where(
            BoardMember.board_id == board.id,
            BoardMember.user_id == user_id
        )
        result = await db.execute(stmt)
        if result.rowcount == 0:
            raise NotFoundError("Member not found")
        await db.commit()
