"""Shared test fixtures."""

import uuid
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from petnotify.config import Settings
from petnotify.models import User
from petnotify.models.base import Base


@pytest.fixture
def sample_user_id() -> uuid.UUID:
    return uuid.UUID("12345678-1234-1234-1234-123456789abc")


@pytest.fixture
def other_user_id() -> uuid.UUID:
    return uuid.UUID("87654321-4321-4321-4321-cba987654321")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        app_env="development",
        database_url="sqlite+aiosqlite:///:memory:",
        redis_url="redis://localhost:6379/0",
        jwt_secret=SecretStr("test-secret"),
        firebase_project_id="petnotify-test",
        firebase_server_key=SecretStr("legacy-server-key"),
        push_timeout_seconds=5.0,
    )


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite shared by every connection of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest_asyncio.fixture
async def users(db_session: AsyncSession, sample_user_id, other_user_id) -> list[User]:
    rows = [
        User(id=sample_user_id, email="alice@example.com", name="Alice"),
        User(id=other_user_id, email="bruno@example.com", name="Bruno"),
    ]
    db_session.add_all(rows)
    await db_session.commit()
    return rows
