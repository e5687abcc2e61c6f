"""
Database Connection Module
Handles the order store connection using the SQLAlchemy async engine.
"""

import logging
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from smartmenu.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def build_engine(database_url: str, **kwargs) -> AsyncEngine:
    """Create an async engine; pool sizing only applies to server databases."""
    url = make_url(database_url)
    options = {"echo": False}
    if url.get_backend_name() != "sqlite":
        options.update(pool_size=5, max_overflow=10)
    options.update(kwargs)
    return create_async_engine(database_url, **options)


engine = build_engine(settings.database_url)

# Session factory - creates new database sessions
async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False  # Objects remain accessible after commit
)


# Base class for all our models
class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    """
    Dependency injection for FastAPI routes.
    Yields a database session and ensures cleanup.
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


def _ensure_sqlite_directory(db_engine: AsyncEngine) -> None:
    url = db_engine.url
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


async def init_db(db_engine: AsyncEngine = None) -> None:
    """
    Create all tables in database.
    Called once at application startup.
    """
    db_engine = db_engine or engine
    _ensure_sqlite_directory(db_engine)
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def dispose_db(db_engine: AsyncEngine = None) -> None:
    await (db_engine or engine).dispose()
