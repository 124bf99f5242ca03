from datetime import datetime
from pydantic import BaseModel


class CommentBase(BaseModel):
    """Base schema for comment data"""
    content: str


class CommentCreate(CommentBase):
    """Schema for comment creation"""
    pass


class CommentUpdate(BaseModel):
    """Schema for comment update"""
    content: str


class CommentInDB(CommentBase):
    """Schema for comment representation in the database"""
    id: int
    card_id: int
    user_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CommentResponse(CommentInDB):
    """Schema for comment response"""
    pass
