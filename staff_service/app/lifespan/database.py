"""Database connection lifespan management."""

from __future__ import annotations

import logging

from staff_service.core.settings import PostgresSettings
from staff_service.infra.database.session import close_database, ensure_schema, init_database

from .registry import lifespan_registry

logger = logging.getLogger(__name__)


@lifespan_registry.register(
    name="database",
    startup_order=10,
    requires=["core"],
)
async def startup_database(db_settings: PostgresSettings, **kwargs: object) -> None:
    """Check the database is reachable and create missing tables.

    With ``startup_require_db`` disabled an unreachable database only
    degrades the service; requests touching it fail until it is back.
    """
    try:
        await init_database()
        if db_settings.create_tables:
            await ensure_schema()
        logger.info(
            "Database connection initialized",
            extra={"postgres": db_settings.is_configured, "pool_size": db_settings.pool_size},
        )
    except Exception as e:
        if db_settings.startup_require_db:
            logger.exception(
                "Database required but unavailable, failing startup",
                extra={"error": str(e), "startup_require_db": True},
            )
            raise
        logger.warning(
            "Database unavailable, continuing in degraded mode",
            extra={"error": str(e), "startup_require_db": False},
        )


@lifespan_registry.register(name="database")
async def shutdown_database(**kwargs: object) -> None:
    await close_database()
