"""Database engine and session management."""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine
)
from sqlalchemy.pool import StaticPool

from classroll.core.logging import get_logger
from classroll.infrastructure.database.models import Base

logger = get_logger(__name__)

IN_MEMORY_SQLITE_URL = "sqlite+aiosqlite://"


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine; an empty URL selects an in-memory SQLite database.

    In-memory SQLite lives inside a single connection, so it is served
    through a StaticPool that hands the same connection to every session.
    """
    url = database_url or IN_MEMORY_SQLITE_URL
    if url.startswith("sqlite") and (url.endswith("://") or ":memory:" in url):
        return create_async_engine(
            url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(url, echo=echo)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create missing tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.debug("Database schema ready", url=engine.url.render_as_string(hide_password=True))


@asynccontextmanager
async def get_db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Get database session.

    Yields:
        AsyncSession: Database session

    Example:
        ```python
        async with get_db_session(session_factory) as session:
            await session.execute(query)
            await session.commit()
        ```
    """
    session = session_factory()
    logger.debug("Creating new database session")
    try:
        yield session
    except Exception as e:
        logger.error(
            "Database session error",
            error=str(e),
            exc_info=True
        )
        await session.rollback()
        raise
    finally:
        logger.debug("Closing database session")
        await session.close()
