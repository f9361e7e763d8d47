"""
Database Layer

Async SQLAlchemy 2.0 setup for the note store, using asyncpg as the
PostgreSQL driver.

Design:
    - No module-level engine: each resource bundle owns its engine,
      so a configuration reload can build a new one and dispose the old.
    - create_session_factory: returns a reusable async session maker.
"""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from journal.core.config import Settings

logger = logging.getLogger(__name__)


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for ``settings.DATABASE_URL``."""
    engine = create_async_engine(settings.ASYNC_DATABASE_URL, echo=False, pool_size=5)
    logger.info("Database engine created: %s", engine.url.render_as_string())
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session maker bound to ``engine``."""
    # expire_on_commit=False: prevents implicit I/O after commit when accessing attributes
    return async_sessionmaker(engine, expire_on_commit=False)


async def ping(engine: AsyncEngine) -> None:
    """
    Verify connectivity with a trivial query.

    Raises:
        sqlalchemy.exc.SQLAlchemyError / OSError: If the database is unreachable.
    """
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("Database connection verified")


async def dispose(engine: AsyncEngine) -> None:
    """Dispose the engine's connection pool."""
    await engine.dispose()
    logger.info("Database engine disposed")
