"""
Database Connection Module
Handles the relational store using the SQLAlchemy async engine.

PostgreSQL (psycopg) in deployment, SQLite (aiosqlite) in tests. Every
request gets its own AsyncSession from a shared connection pool.
"""

import logging
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from letsorder.core.config import get_settings

logger = logging.getLogger(__name__)


# Base class for all our models
class Base(DeclarativeBase):
    pass


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for ``database_url``.

    SQLite needs foreign keys switched on per connection so that restaurant
    deletion cascades the way it does on PostgreSQL.
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        engine = create_async_engine(database_url, echo=echo)

        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    settings = get_settings()
    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=settings.database_pool_size,  # Connection pool size
        max_overflow=settings.database_max_overflow,  # Extra connections when pool is full
        pool_pre_ping=True,
    )


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,  # Objects remain accessible after commit
    )


_settings = get_settings()
engine = build_engine(_settings.database_url, echo=_settings.database_echo)
async_session_maker = build_session_maker(engine)


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    Dependency injection for FastAPI routes.
    Yields a database session and ensures cleanup.
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(bind: AsyncEngine = None) -> None:
    """
    Create all tables in database.
    Called once at application startup.
    """
    # Register the mappers on Base.metadata before create_all
    from letsorder import models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")
