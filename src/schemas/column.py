from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from src.schemas.card import CardResponse


class ColumnBase(BaseModel):
    """Base schema for column data"""
    name: str
    wip_limit: Optional[int] = Field(None, ge=0)
    color: Optional[str] = None


class ColumnCreate(ColumnBase):
    """Schema for column creation"""
    position: Optional[int] = Field(None, ge=0)


class ColumnUpdate(BaseModel):
    """Schema for column update; ``position`` moves the column within its board"""
    name: Optional[str] = None
    wip_limit: Optional[int] = Field(None, ge=0)
    color: Optional[str] = None
    position: Optional[int] = Field(None, ge=0)


class ColumnInDB(ColumnBase):
    """Schema for column representation in the database"""
    id: int
    board_id: int
    position: int
    color: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ColumnResponse(ColumnInDB):
    """Schema for column response with its live cards"""
    cards: List[CardResponse] = []


class ColumnOrderUpdate(BaseModel):
    """Every column id of the board, in the new order"""
    column_ids: List[int]
