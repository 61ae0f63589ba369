# formiq/db/engine.py
"""
Async engine and session factory.

SQLite gets WAL mode, a busy timeout and enforced foreign keys on every
connection so the API and the workflow worker can share one database file.
"""

import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .tables import Base

logger = logging.getLogger(__name__)


def create_engine(url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the given SQLAlchemy URL.

    Args:
        url: Async SQLAlchemy URL (sqlite+aiosqlite:// or postgresql+asyncpg://)
        echo: Log every SQL statement

    Returns:
        AsyncEngine
    """
    is_sqlite = url.startswith("sqlite")
    connect_args = {"timeout": 30} if is_sqlite else {}
    engine = create_async_engine(url, echo=echo, connect_args=connect_args)

    if is_sqlite:

        @event.listens_for(engine.sync_engine, "connect")
        def _sqlite_pragmas(dbapi_connection, connection_record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    logger.info(f"Created database engine for {engine.url.render_as_string(hide_password=True)}")
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory whose objects stay readable after commit."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables that don't exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema initialized")
