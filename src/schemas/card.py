from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, validator

from src.models.card import CardPriority


def _naive_utc(value):
    if isinstance(value, str) and value.endswith('Z'):
        # Заменяем 'Z' на '+00:00' для правильной обработки UTC
        fixed_value = value.replace('Z', '+00:00')
        # Преобразуем в datetime и удаляем информацию о часовом поясе
        return datetime.fromisoformat(fixed_value).replace(tzinfo=None)
    elif isinstance(value, datetime) and value.tzinfo is not None:
        # Если уже datetime с часовым поясом, удаляем часовой пояс
        return value.replace(tzinfo=None)
    return value


class CardBase(BaseModel):
    """Base schema for card data"""
    title: str
    description: Optional[str] = None
    priority: CardPriority = CardPriority.MEDIUM
    due_date: Optional[datetime] = None
    assignee_id: Optional[str] = None
    labels: List[str] = []

    @validator('due_date', pre=True)
    def parse_due_date(cls, value):
        return _naive_utc(value)


class CardCreate(CardBase):
    """Schema for card creation"""
    column_id: int
    position: Optional[int] = Field(None, ge=0)


class CardUpdate(BaseModel):
    """Schema for card update; only the fields sent are applied"""
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[CardPriority] = None
    due_date: Optional[datetime] = None
    assignee_id: Optional[str] = None
    labels: Optional[List[str]] = None
    is_archived: Optional[bool] = None

    @validator('due_date', pre=True)
    def parse_due_date(cls, value):
        return _naive_utc(value)


class CardMove(BaseModel):
    """Schema for moving a card"""
    column_id: int
    position: int = Field(..., ge=0)


class CardReorder(BaseModel):
    """Every live card id of the column, in the new order"""
    card_ids: List[int]


class CardInDB(CardBase):
    """Schema for card representation in the database"""
    id: int
    column_id: int
    board_id: int
    position: int
    is_archived: bool
    created_by: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CardResponse(CardInDB):
    """Schema for card response"""
    pass
