"""Async engine and session handling for the medication and log tables.

The engine is built on first use so it binds to the running event loop
(asyncpg connections cannot cross loops).
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from medguard.config import settings
from medguard.logging_config import get_logger

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def engine_options(database_url: str, testing: bool = False) -> dict[str, Any]:
    """Pool arguments for ``create_async_engine``.

    SQLite manages its own single connection and takes no pool sizing.
    Under test every checkout opens a fresh connection (NullPool) so no
    connection outlives the event loop that created it.
    """
    if make_url(database_url).get_backend_name() == "sqlite":
        return {}
    if testing:
        return {"poolclass": NullPool}
    return {"pool_size": 5, "max_overflow": 10, "pool_pre_ping": True}


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            settings.database_url,
            **engine_options(settings.database_url, settings.testing),
        )
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    global _session_maker
    if _session_maker is None:
        # Loaded medications and logs stay readable after the service commits
        _session_maker = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_maker


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request.

    Services commit their own writes; anything left pending when the
    request fails is rolled back here.
    """
    async with get_session_maker()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def check_database_connection() -> bool:
    """True when ``SELECT 1`` succeeds against the log store."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Database unreachable", error_type=type(exc).__name__)
        return False
    return True


async def close_database() -> None:
    """Dispose of the engine; the next request builds a new one."""
    global _engine, _session_maker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_maker = None
