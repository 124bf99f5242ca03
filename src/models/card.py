from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Boolean, Enum, JSON, Index
from sqlalchemy.orm import relationship
import enum

from src.db.base import Base
from src.models.board import enum_values


class CardPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Card(Base):
    """Модель карточки канбан-доски"""

    __tablename__ = "kanban_cards"
    __table_args__ = (
        Index("ix_kanban_cards_column_live_position", "column_id", "is_archived", "position"),
    )

    id = Column(Integer, primary_key=True, index=True)
    column_id = Column(Integer, ForeignKey("kanban_columns.id", ondelete="CASCADE"), nullable=False)
    # Денормализовано для быстрых выборок; задаётся при создании и не меняется
    board_id = Column(Integer, ForeignKey("kanban_boards.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    # 0..N-1 среди неархивных карточек колонки; у архивных значение устаревшее
    position = Column(Integer, nullable=False, default=0)
    priority = Column(
        Enum(CardPriority, name="kanban_card_priority", values_callable=enum_values),
        nullable=False,
        default=CardPriority.MEDIUM,
    )
    due_date = Column(DateTime, nullable=True)
    assignee_id = Column(String, nullable=True)
    labels = Column(JSON, nullable=False, default=list)
    is_archived = Column(Boolean, nullable=False, default=False)
    created_by = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    column = relationship("Column", back_populates="cards")

    comments = relationship(
        "Comment",
        back_populates="card",
        order_by="Comment.created_at",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Comment(Base):
    """Модель комментария к карточке"""

    __tablename__ = "kanban_comments"

    id = Column(Integer, primary_key=True, index=True)
    card_id = Column(Integer, ForeignKey("kanban_cards.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    card = relationship("Card", back_populates="comments")
