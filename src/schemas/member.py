from datetime import datetime
from pydantic import BaseModel

from src.models.board import BoardRole


class AddMemberRequest(BaseModel):
    """Schema for adding a user to a board"""
    user_id: str
    role: BoardRole = BoardRole.VIEWER


class ChangeMemberRoleRequest(BaseModel):
    """Schema for changing a member's role on a board"""
    role: BoardRole


class MemberResponse(BaseModel):
    id: int
    board_id: int
    user_id: str
    role: BoardRole
    added_at: datetime

    class Config:
        from_attributes = True
