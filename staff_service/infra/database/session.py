"""Database session management.

PostgreSQL via psycopg when configured, otherwise the aiosqlite fallback URL.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from staff_service.core.settings import get_app_settings, get_db_settings
from staff_service.utils.retry import retry

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

db_settings = get_db_settings()
app_settings = get_app_settings()

engine_kwargs = db_settings.sqlalchemy_engine_kwargs()
engine_kwargs["echo"] = db_settings.echo or app_settings.debug

engine = create_async_engine(db_settings.get_sqlalchemy_url(), **engine_kwargs)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


def _safe_url() -> str:
    return engine.url.render_as_string(hide_password=True)


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session.

    Example:
        async with get_async_session() as session:
            result = await session.execute(select(Staff))
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@retry(
    max_attempts=db_settings.startup_retry_attempts,
    initial_delay=db_settings.startup_retry_delay,
    max_delay=30.0,
    exponential_base=2.0,
    jitter=True,
    stop_after_delay=db_settings.startup_retry_timeout,
)
async def init_database() -> None:
    """Verify the database is reachable, retrying with exponential backoff.

    Useful at startup when the database container may still be booting.

    Raises:
        RetryError: If unable to connect after all retry attempts.
    """
    logger.info(
        "Initializing database connection with retry",
        extra={
            "max_attempts": db_settings.startup_retry_attempts,
            "initial_delay": db_settings.startup_retry_delay,
        },
    )

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(
            "Failed to connect to database",
            extra={"url": _safe_url(), "error": str(e)},
        )
        raise

    logger.info(
        "Database connection established successfully",
        extra={"url": _safe_url(), "dialect": engine.dialect.name},
    )


async def ensure_schema() -> None:
    """Create missing tables for all registered models.

    Idempotent thanks to ``create_all``'s checkfirst behaviour.
    """
    from staff_service.core.database import Base
    from staff_service.features.staff.models import Staff  # noqa: F401  registers the table

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database schema ensured", extra={"tables": sorted(Base.metadata.tables)})


async def close_database() -> None:
    """Dispose of the engine's connection pool.

    Called during application shutdown.
    """
    logger.info("Closing database connection")

    try:
        await engine.dispose()
        logger.info("Database connection closed successfully")
    except Exception as e:
        logger.exception("Error closing database connection", extra={"error": str(e)})
