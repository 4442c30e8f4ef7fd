"""Pytest configuration and shared fixtures.

API tests run against an in-memory SQLite database (aiosqlite) with a
single shared connection, and a pinned clock via the ``get_now``
dependency override.
"""

import os
from collections.abc import AsyncGenerator
from datetime import datetime

# Configure settings BEFORE importing the app
os.environ["TESTING"] = "true"
os.environ["STRICT_INVARIANTS"] = "true"
os.environ["LOG_FORMAT"] = "text"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from medguard.database import get_db
from medguard.dependencies import get_now
from medguard.main import app
from medguard.models import Base

from factories import NOW


class Clock:
    """Mutable stand-in for the wall clock."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def set(self, now: datetime) -> None:
        self.now = now


@pytest.fixture
def clock() -> Clock:
    return Clock(NOW)


@pytest_asyncio.fixture
async def session_maker() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker, clock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the app wired to the test database and clock."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: clock.now
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()

