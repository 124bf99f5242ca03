from typing import List, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.team import team_members


class TeamDirectory(Protocol):
    """Host-provided team membership facts"""

    async def is_member(self, team_id: str, user_id: str) -> bool:
        ...

    async def team_ids_for(self, user_id: str) -> List[str]:
        ...


class SqlTeamDirectory:
    """TeamDirectory backed by the host's team_members table"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_member(self, team_id: str, user_id: str) -> bool:
        query = select(team_members.c.user_id).where(
            team_members.c.team_id == team_id,
            team_members.c.user_id == user_id,
        )
        result = await self.db.execute(query)
        return result.first() is not None

    async def team_ids_for(self, user_id: str) -> List[str]:
        query = select(team_members.c.team_id).where(team_members.c.user_id == user_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())
