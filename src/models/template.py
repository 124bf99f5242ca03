from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON

from src.db.base import Base


class Template(Base):
    """Board structure template.

    ``structure`` has the shape::

        {"columns": [{"name": str, "color": str?,
                      "cards": [{"title": str, "description": str?,
                                 "priority": str?, "labels": [str]?}]?}]}

    Templates are only read here, when a board is created from one.
    """

    __tablename__ = "kanban_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    structure = Column(JSON, nullable=False)
    is_public = Column(Boolean, nullable=False, default=False)
    category = Column(String, nullable=False, default="general")
    created_by = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
