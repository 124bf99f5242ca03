from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete
from datetime import datetime

from src.core.exceptions import InvalidReferenceError, NotFoundError, ValidationError
from src.models.card import Comment


class CommentService:
    """CRUD operations service for Comment model"""

    @staticmethod
    async def create(
        db: AsyncSession,
        content: str,
        card_id: int,
        user_id: str
    ) -> Comment:
        """Create a new comment"""
        content = (content or "").strip()
        if not content:
            raise ValidationError("Comment cannot be empty")

        comment = Comment(
            content=content,
            card_id=card_id,
            user_id=user_id
        )

        db.add(comment)
        await db.commit()
        await db.refresh(comment)
        return comment

    @staticmethod
    async def get_by_id(
        db: AsyncSession,
        comment_id: int
    ) -> Optional[Comment]:
        """Get comment by id"""
        query = (
            select(Comment)
            .where(Comment.id == comment_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    async def get_on_card(
        db: AsyncSession,
        card_id: int,
        comment_id: int
    ) -> Comment:
        """Get a comment addressed through its card"""
        comment = await CommentService.get_by_id(db, comment_id)
        if not comment:
            raise NotFoundError("Comment not found")
        if comment.card_id != card_id:
            raise InvalidReferenceError("Comment does not belong to this card")
        return comment

    @staticmethod
    async def get_by_card_id(
        db: AsyncSession,
        card_id: int
    ) -> List[Comment]:
        """Get all comments for a card, oldest first"""
        query = (
            select(Comment)
            .where(Comment.card_id == card_id)
            .order_by(Comment.created_at, Comment.id)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def update(
        db: AsyncSession,
        comment_id: int,
        content: str
    ) -> Optional[Comment]:
        """Update a comment's text"""
        content = (content or "").strip()
        if not content:
            raise ValidationError("Comment cannot be empty")

        stmt = update(Comment).where(Comment.id == comment_id).values(
            content=content,
            updated_at=datetime.utcnow().replace(tzinfo=None)
        )
        await db.execute(stmt)
        await db.commit()
        return await CommentService.get_by_id(db, comment_id)

    @staticmethod
    async def delete(
        db: AsyncSession,
        comment_id: int
    ) -> bool:
        """Delete a comment"""
        stmt = delete(Comment).where(Comment.id == comment_id)
        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount > 0
