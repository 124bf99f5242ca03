from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
import enum

from src.db.base import Base


class BoardType(str, enum.Enum):
    PERSONAL = "personal"
    TEAM = "team"


# Роли на доске, от старшей к младшей
class BoardRole(str, enum.Enum):
    OWNER = "owner"      # Полный доступ, удаление доски, управление участниками
    EDITOR = "editor"    # Колонки, карточки, комментарии, настройки доски
    VIEWER = "viewer"    # Только просмотр


def enum_values(enum_cls):
    """Store enum values ("owner") instead of member names ("OWNER")"""
    return [member.value for member in enum_cls]


class Board(Base):
    """Доска канбан-системы: личная или командная"""

    __tablename__ = "kanban_boards"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    type = Column(
        Enum(BoardType, name="kanban_board_type", values_callable=enum_values),
        nullable=False,
        default=BoardType.PERSONAL,
    )
    # Команда хоста, только для командных досок
    team_id = Column(String, nullable=True, index=True)
    # Идентификатор пользователя хоста, создавшего доску
    owner_id = Column(String, nullable=False, index=True)
    background_color = Column(String, nullable=False, default="#ffffff")
    is_archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    members = relationship(
        "BoardMember", back_populates="board", cascade="all, delete-orphan", passive_deletes=True
    )
    columns = relationship(
        "Column",
        back_populates="board",
        order_by="Column.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class BoardMember(Base):
    """Явно выданный доступ к доске"""

    __tablename__ = "kanban_board_members"
    __table_args__ = (UniqueConstraint("board_id", "user_id", name="uq_kanban_board_member"),)

    id = Column(Integer, primary_key=True, index=True)
    board_id = Column(Integer, ForeignKey("kanban_boards.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    role = Column(
        Enum(BoardRole, name="kanban_board_member_role", values_callable=enum_values),
        nullable=False,
        default=BoardRole.VIEWER,
    )
    added_at = Column(DateTime, default=datetime.utcnow)

    board = relationship("Board", back_populates="members")
