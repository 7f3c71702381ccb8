"""Application lifespan management.

Imports every lifespan module so its hooks register with
``lifespan_registry``, then runs them around the application's lifetime.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from staff_service.app.lifespan import core, database, messaging
from staff_service.app.lifespan.registry import lifespan_registry
from staff_service.core.settings import (
    get_app_settings,
    get_db_settings,
    get_logging_settings,
    get_rabbit_settings,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

# Imported for hook registration
_ = (core, database, messaging)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup hooks, serve, then run shutdown hooks in reverse."""
    app_settings = get_app_settings()
    db_settings = get_db_settings()
    rabbit_settings = get_rabbit_settings()

    hook_kwargs = {
        "app": app,
        "app_settings": app_settings,
        "db_settings": db_settings,
        "rabbit_settings": rabbit_settings,
        "log_settings": get_logging_settings(),
    }

    await lifespan_registry.startup(**hook_kwargs)

    logger.info(
        "Application startup complete - listening on %s:%s",
        app_settings.host,
        app_settings.port,
        extra={
            "service": app_settings.service_name,
            "environment": app_settings.environment,
            "database": "postgres" if db_settings.is_configured else "sqlite",
            "messaging_enabled": rabbit_settings.is_configured,
        },
    )

    try:
        yield
    finally:
        logger.info("Application shutting down", extra={"service": app_settings.service_name})
        await lifespan_registry.shutdown(**hook_kwargs)
        logger.info("Application shutdown complete")


__all__ = ["lifespan"]
