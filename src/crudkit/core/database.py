"""Database engine and session factory management with async SQLAlchemy."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from crudkit.core.config import settings
from crudkit.core.logging import get_logger

logger = get_logger(__name__)


class DBErrorMessage:
    """Standardized database error messages."""
    CREATE_ENGINE_NO_URL = "Database URL is not configured"
    CREATE_ENGINE_MIN_DB_POOL_SIZE = "CRUDKIT_DATABASE_POOL_SIZE must be at least 1"
    CREATE_ENGINE_NEGATIVE_MAX_OVERFLOW = "CRUDKIT_DATABASE_MAX_OVERFLOW must be non-negative"
    CREATE_ENGINE_FAILED = "Failed to create database engine"

    CLOSE_DATABASE_FAILED = "Failed to close database connections"


def _redact(url: str) -> str:
    return url.split("@")[1] if "@" in url else "***"


def create_engine(database_url: str | None = None, **overrides: Any) -> AsyncEngine:
    """Create an AsyncEngine with connection pooling configuration.

    Args:
        database_url: Database URL; defaults to ``settings.database_url``
        **overrides: Extra keyword arguments passed to ``create_async_engine``

    Returns:
        AsyncEngine: Configured async SQLAlchemy engine

    Connection Pool Configuration:
        - pool_size: Number of connections to keep in the pool (default: 20)
        - max_overflow: Maximum overflow connections (default: 10)
        - SQLite URLs skip pool sizing, its dialect picks its own pool class

    Raises:
        ValueError: If database URL is invalid or settings are misconfigured
    """
    url = database_url if database_url is not None else settings.database_url
    try:
        if not url:
            raise ValueError(DBErrorMessage.CREATE_ENGINE_NO_URL)

        options: dict[str, Any] = {"echo": settings.database_echo}

        if url.startswith("sqlite"):
            options["connect_args"] = {"check_same_thread": False}
        else:
            if settings.database_pool_size < 1:
                raise ValueError(DBErrorMessage.CREATE_ENGINE_MIN_DB_POOL_SIZE)

            if settings.database_max_overflow < 0:
                raise ValueError(DBErrorMessage.CREATE_ENGINE_NEGATIVE_MAX_OVERFLOW)

            options.update(
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                pool_pre_ping=True,
                pool_recycle=3600,
            )

        options.update(overrides)

        logger.info(
            "Creating async database engine",
            url=_redact(url),
            pool_size=options.get("pool_size"),
            max_overflow=options.get("max_overflow"),
        )

        return create_async_engine(url, **options)
    except ValueError:
        raise
    except Exception as e:
        logger.error("Failed to create database engine", url=_redact(url), error=str(e))
        raise ValueError(DBErrorMessage.CREATE_ENGINE_FAILED) from e


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory used by ``SQLAlchemyRepo``.

    Sessions keep loaded attributes after commit so records returned by an
    operation stay readable once their session is closed.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def check_database_connection(engine: AsyncEngine) -> bool:
    """Check if database connection is available.

    Returns:
        bool: True if connection successful, False otherwise
    """
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.debug("Database connection check passed")
        return True
    except Exception as e:
        logger.error("Database connection check failed", error=str(e))
        return False


async def close_database(engine: AsyncEngine) -> None:
    """Close all database connections held by ``engine``.

    Raises:
        RuntimeError: If graceful shutdown fails
    """
    try:
        logger.info("Closing database connections")
        await engine.dispose()
    except Exception as e:
        logger.error("Error closing database connections", error=str(e))
        raise RuntimeError(DBErrorMessage.CLOSE_DATABASE_FAILED) from e
