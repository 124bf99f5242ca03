from typing import Any, Dict, List, Optional, Sequence, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func, or_, and_
from sqlalchemy.orm import selectinload
from pydantic import ValidationError as PydanticValidationError
from datetime import datetime

from src.core.exceptions import NotFoundError, ValidationError
from src.logs import debug_logger, log_function
from src.models.board import Board, BoardMember, BoardRole, BoardType
from src.models.column import Column
from src.models.card import Card, CardPriority
from src.models.template import Template
from src.schemas.board import TemplateColumn

DEFAULT_COLUMNS = [
    {"name": "To Do", "color": "#gray"},
    {"name": "In Progress", "color": "#blue"},
    {"name": "Done", "color": "#green"},
]


def _priority(value: Optional[str]) -> CardPriority:
    try:
        return CardPriority(value or CardPriority.MEDIUM.value)
    except ValueError:
        raise ValidationError(f"Unknown card priority: {value}")


class BoardService:
    """CRUD operations service for Board model"""

    @staticmethod
    @log_function()
    async def create(
        db: AsyncSession,
        owner_id: str,
        name: str,
        description: Optional[str] = None,
        board_type: BoardType = BoardType.PERSONAL,
        team_id: Optional[str] = None,
        background_color: Optional[str] = None,
        template_id: Optional[int] = None,
        columns: Optional[Sequence[Dict[str, Any]]] = None
    ) -> Board:
        """Create a board with its initial columns.

        Columns come from ``columns`` if given, else from the template, else
        the three default columns. Positions are dense from 0 in the given order.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Board name is required")
        if board_type == BoardType.TEAM and not team_id:
            raise ValidationError("team_id is required for team boards")
        if board_type == BoardType.PERSONAL:
            team_id = None

        structure = columns
        if structure is None and template_id is not None:
            template = await BoardService.get_template(db, template_id, owner_id)
            structure = BoardService._template_columns(template)
        if structure is None:
            structure = DEFAULT_COLUMNS

        board = Board(
            name=name,
            description=description,
            type=board_type,
            team_id=team_id,
            owner_id=owner_id,
            background_color=background_color or "#ffffff",
        )
        db.add(board)
        await db.flush()

        # Создатель доски сразу виден в списке участников
        db.add(BoardMember(board_id=board.id, user_id=owner_id, role=BoardRole.OWNER))

        for position, column_def in enumerate(structure):
            column_name = (column_def.get("name") or "").strip()
            if not column_name:
                raise ValidationError("Column name is required")
            column = Column(
                board_id=board.id,
                name=column_name,
                position=position,
                color=column_def.get("color") or "#gray",
                wip_limit=column_def.get("wip_limit"),
            )
            db.add(column)
            await db.flush()

            for card_position, card_def in enumerate(column_def.get("cards") or []):
                db.add(Card(
                    column_id=column.id,
                    board_id=board.id,
                    title=card_def["title"],
                    description=card_def.get("description"),
                    priority=_priority(card_def.get("priority")),
                    labels=list(card_def.get("labels") or []),
                    position=card_position,
                    created_by=owner_id,
                ))

        await db.commit()
        debug_logger.info(f"Создана доска: ID {board.id}, колонок {len(structure)}")
        return await BoardService.get_detail(db, board.id)

    @staticmethod
    def _template_columns(template: Template) -> List[Dict[str, Any]]:
        """Columns of a stored template, checked like inline columns"""
        structure = template.structure if isinstance(template.structure, dict) else {}
        try:
            return [
                TemplateColumn.model_validate(column_def).model_dump()
                for column_def in structure.get("columns") or []
            ]
        except PydanticValidationError as e:
            debug_logger.warning(f"Шаблон {template.id} повреждён: {e}")
            raise ValidationError(f"Template {template.id} has an invalid structure")

    @staticmethod
    async def get_template(
        db: AsyncSession,
        template_id: int,
        user_id: str
    ) -> Template:
        """Get a template usable by the user: public or their own"""
        query = select(Template).where(Template.id == template_id)
        result = await db.execute(query)
        template = result.scalars().first()
        if not template or (not template.is_public and template.created_by != user_id):
            raise NotFoundError("Template not found")
        return template

    @staticmethod
    async def get_by_id(
        db: AsyncSession,
        board_id: int
    ) -> Optional[Board]:
        """Get board by id"""
        query = (
            select(Board)
            .where(Board.id == board_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    async def get_detail(
        db: AsyncSession,
        board_id: int
    ) -> Optional[Board]:
        """Board with members and ordered columns, each with its live cards"""
        query = (
            select(Board)
            .where(Board.id == board_id)
            .options(
                selectinload(Board.columns).selectinload(
                    Column.cards.and_(Card.is_archived.is_(False))
                ),
                selectinload(Board.members),
            )
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    async def get_boards_by_user(
        db: AsyncSession,
        user_id: str,
        team_ids: Sequence[str] = (),
        board_type: Optional[BoardType] = None,
        team_id: Optional[str] = None,
        is_archived: bool = False
    ) -> List[Tuple[Board, int, int]]:
        """Boards visible to the user as (board, card_count, member_count).

        Visible means owned, shared through a member row, or a team board of
        one of ``team_ids``. Most recently updated first.
        """
        member_boards = select(BoardMember.board_id).where(BoardMember.user_id == user_id)
        visible = [Board.owner_id == user_id, Board.id.in_(member_boards)]
        if team_ids:
            visible.append(and_(Board.type == BoardType.TEAM, Board.team_id.in_(list(team_ids))))

        query = select(Board).where(or_(*visible), Board.is_archived.is_(is_archived))
        if board_type is not None:
            query = query.where(Board.type == board_type)
        if team_id is not None:
            query = query.where(Board.team_id == team_id)
        query = query.order_by(Board.updated_at.desc(), Board.id.desc())

        result = await db.execute(query)
        boards = list(result.scalars().all())
        if not boards:
            return []

        board_ids = [board.id for board in boards]
        card_query = (
            select(Card.board_id, func.count(Card.id))
            .where(Card.board_id.in_(board_ids), Card.is_archived.is_(False))
            .group_by(Card.board_id)
        )
        card_counts = dict((await db.execute(card_query)).all())
        member_query = (
            select(BoardMember.board_id, func.count(BoardMember.id))
            .where(BoardMember.board_id.in_(board_ids))
            .group_by(BoardMember.board_id)
        )
        member_counts = dict((await db.execute(member_query)).all())

        return [
            (board, card_counts.get(board.id, 0), member_counts.get(board.id, 0))
            for board in boards
        ]

    @staticmethod
    @log_function()
    async def update(
        db: AsyncSession,
        board_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        background_color: Optional[str] = None,
        is_archived: Optional[bool] = None
    ) -> Optional[Board]:
        """Update a board's settings"""
        update_data = {}
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError("Board name is required")
            update_data["name"] = name
        if description is not None:
            update_data["description"] = description
        if background_color is not None:
            update_data["background_color"] = background_color
        if is_archived is not None:
            update_data["is_archived"] = is_archived

        if not update_data:
            return await BoardService.get_detail(db, board_id)

        # Явно устанавливаем updated_at для предотвращения проблем с часовыми поясами
        update_data["updated_at"] = datetime.utcnow().replace(tzinfo=None)

        stmt = update(Board).where(Board.id == board_id).values(**update_data)
        await db.execute(stmt)
        await db.commit()

        return await BoardService.get_detail(db, board_id)

    @staticmethod
    async def delete(
        db: AsyncSession,
        board_id: int
    ) -> bool:
        """Delete a board with everything on it"""
        stmt = delete(Board).where(Board.id == board_id)
        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount > 0
