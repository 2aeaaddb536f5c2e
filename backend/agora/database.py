"""
Database connection using SQLAlchemy async.

The same models run against PostgreSQL (asyncpg) in production and
SQLite (aiosqlite) for local development and tests, so column types
stay dialect-neutral.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from agora.config import get_settings

settings = get_settings()

# Connection pool, shared by all requests
engine = create_async_engine(settings.database_url, echo=False)

# expire_on_commit=False keeps objects usable after commit (needed for async)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


async def get_db() -> AsyncSession:
    """Dependency that yields a database session."""
    async with async_session() as session:
        yield session
