"""Shared pytest fixtures for test suite."""

import os
from collections.abc import AsyncGenerator

# Set test environment variables BEFORE any crudkit imports
# Settings are read once when crudkit.core.config is first imported
os.environ["CRUDKIT_ENVIRONMENT"] = "testing"
os.environ["CRUDKIT_LOG_LEVEL"] = "WARNING"
os.environ["CRUDKIT_OTEL_ENABLED"] = "false"  # Disable OpenTelemetry to prevent background threads

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from crudkit.context import CrudContext
from crudkit.core.config import Settings
from crudkit.core.database import create_engine, create_session_factory
from crudkit.models.base import Base
from crudkit.repositories.sql import SQLAlchemyRepo

from tests.factories import Author, Post, Tag, create_post


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Get settings configured for testing.

    Returns:
        Settings: Test environment settings
    """
    return Settings(
        environment="testing",
        log_level="WARNING",
    )


# ===== Database Fixtures =====


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database for each test.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.

    Yields:
        AsyncEngine: Test database engine with all tables created
    """
    engine = create_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(test_engine)


@pytest.fixture
def repo(session_factory: async_sessionmaker[AsyncSession], test_engine: AsyncEngine) -> SQLAlchemyRepo:
    """Data-access handle bound to the per-test database."""
    return SQLAlchemyRepo(session_factory, engine=test_engine)


# ===== Context Fixtures =====


@pytest.fixture
def posts(repo: SQLAlchemyRepo) -> CrudContext[Post]:
    return CrudContext(repo, Post)


@pytest.fixture
def authors(repo: SQLAlchemyRepo) -> CrudContext[Author]:
    return CrudContext(repo, Author)


@pytest.fixture
def tags(repo: SQLAlchemyRepo) -> CrudContext[Tag]:
    """Context over an entity without a changeset function."""
    return CrudContext(repo, Tag)


@pytest_asyncio.fixture
async def seeded_posts(session_factory: async_sessionmaker[AsyncSession]) -> list[Post]:
    """Three posts with overlapping and non-overlapping title/body text.

    Returns:
        list[Post]: Stored posts in insertion (and id) order
    """
    return [
        await create_post(
            session_factory,
            title="Hello World",
            body="An async introduction",
            slug="hello-world",
            views=10,
            published=True,
        ),
        await create_post(
            session_factory,
            title="hello python",
            body="Sync and async code",
            slug="hello-python",
            views=1,
            published=False,
        ),
        await create_post(
            session_factory,
            title="Goodbye World",
            body="Closing remarks",
            slug="goodbye-world",
            views=5,
            published=True,
        ),
    ]
