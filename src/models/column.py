from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from src.db.base import Base


class Column(Base):
    """Модель колонки канбан-доски"""

    __tablename__ = "kanban_columns"
    __table_args__ = (Index("ix_kanban_columns_board_position", "board_id", "position"),)

    id = Column(Integer, primary_key=True, index=True)
    board_id = Column(Integer, ForeignKey("kanban_boards.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    position = Column(Integer, nullable=False, default=0)  # 0..N-1 внутри доски
    wip_limit = Column(Integer, nullable=True)  # WIP-лимит, None = без лимита
    color = Column(String, nullable=False, default="#gray")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    board = relationship("Board", back_populates="columns")

    cards = relationship(
        "Card",
        back_populates="column",
        order_by="Card.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
