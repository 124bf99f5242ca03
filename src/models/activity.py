from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, JSON
import enum

from src.db.base import Base
from src.models.board import enum_values


class ActivityType(str, enum.Enum):
    BOARD_CREATED = "board_created"
    BOARD_UPDATED = "board_updated"
    BOARD_ARCHIVED = "board_archived"
    COLUMN_CREATED = "column_created"
    COLUMN_UPDATED = "column_updated"
    COLUMN_DELETED = "column_deleted"
    COLUMN_REORDERED = "column_reordered"
    CARD_CREATED = "card_created"
    CARD_UPDATED = "card_updated"
    CARD_DELETED = "card_deleted"
    CARD_MOVED = "card_moved"
    CARD_ARCHIVED = "card_archived"
    CARD_ASSIGNED = "card_assigned"
    CARDS_REORDERED = "cards_reordered"
    COMMENT_ADDED = "comment_added"
    COMMENT_UPDATED = "comment_updated"
    COMMENT_DELETED = "comment_deleted"
    MEMBER_ADDED = "member_added"
    MEMBER_REMOVED = "member_removed"
    MEMBER_ROLE_CHANGED = "member_role_changed"


class Activity(Base):
    """Activity log entry for a board.

    Append-only. ``details`` is an opaque key/value map: the
    writer picks the keys per activity type, readers (UI, reports) decide how
    to interpret them. Nothing in the backend reads it back.
    """

    __tablename__ = "kanban_activities"

    id = Column(Integer, primary_key=True, index=True)
    board_id = Column(Integer, ForeignKey("kanban_boards.id", ondelete="CASCADE"), nullable=False, index=True)
    # Без внешнего ключа: карточка может быть уже удалена
    card_id = Column(Integer, nullable=True)
    user_id = Column(String, nullable=True)  # None для системных действий
    type = Column(Enum(ActivityType, name="kanban_activity_type", values_callable=enum_values), nullable=False)
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
