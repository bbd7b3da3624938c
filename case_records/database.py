from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from case_records.models import Base

# Default connection URL (SQLite with the aiosqlite driver)
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./casebook.db"


def create_engine(database_url: str = DEFAULT_DATABASE_URL) -> AsyncEngine:
    """Create an async engine instance for SQLAlchemy."""
    return create_async_engine(database_url, echo=False)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to *engine*."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """
    Initialize the database by creating all tables defined in the models (if they don't exist).
    Called at application startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
