from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from src.models.board import BoardRole, BoardType
from src.models.card import CardPriority
from src.schemas.column import ColumnResponse
from src.schemas.member import MemberResponse


class TemplateCard(BaseModel):
    title: str
    description: Optional[str] = None
    priority: CardPriority = CardPriority.MEDIUM
    labels: List[str] = []


class TemplateColumn(BaseModel):
    """Initial column of a new board"""
    name: str
    color: Optional[str] = None
    wip_limit: Optional[int] = Field(None, ge=0)
    cards: List[TemplateCard] = []


class BoardBase(BaseModel):
    """Base schema for board data"""
    name: str
    description: Optional[str] = None
    background_color: Optional[str] = None


class BoardCreate(BoardBase):
    """Schema for board creation.

    ``columns`` takes precedence over ``template_id``; with neither the board
    gets the default To Do / In Progress / Done columns.
    """
    type: BoardType = BoardType.PERSONAL
    team_id: Optional[str] = None
    template_id: Optional[int] = None
    columns: Optional[List[TemplateColumn]] = None


class BoardUpdate(BaseModel):
    """Schema for board update"""
    name: Optional[str] = None
    description: Optional[str] = None
    background_color: Optional[str] = None
    is_archived: Optional[bool] = None


class BoardInDB(BoardBase):
    """Schema for board representation in the database"""
    id: int
    type: BoardType
    team_id: Optional[str] = None
    owner_id: str
    background_color: str
    is_archived: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BoardResponse(BoardInDB):
    """Schema for board response"""
    pass


class BoardSummary(BoardInDB):
    """Board list entry"""
    card_count: int = 0
    member_count: int = 0


class BoardList(BaseModel):
    """Schema for list of boards"""
    boards: List[BoardSummary]
    total: int = 0


class BoardCompleteResponse(BoardInDB):
    """Schema for complete board response with columns and their cards"""
    columns: List[ColumnResponse] = []
    members: List[MemberResponse] = []
    role: BoardRole
    permissions: Dict[str, bool] = {}
