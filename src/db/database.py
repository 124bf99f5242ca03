from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine, AsyncSession
from sqlalchemy.pool import NullPool
from typing import AsyncGenerator

from src.core import get_settings

# Get application settings
settings = get_settings()

# Create async engine
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    future=True,
    poolclass=NullPool,
)

# Create session factory
async_session_factory = async_sessionmaker(
    engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


# Dependency for FastAPI
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Initialize database
async def init_db():
    async with engine.begin() as conn:
        # Import here to avoid circular imports
        from src.db.models import Base
        # Only plugin tables; host tables (team_members) live on their own metadata
        await conn.run_sync(Base.metadata.create_all)
