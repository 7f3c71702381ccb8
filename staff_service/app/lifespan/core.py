"""Core lifespan service: logging.

Runs first and has no dependencies.
"""

from __future__ import annotations

import logging

from staff_service.core.settings import AppSettings, LoggingSettings
from staff_service.infra.logging.config import setup_logging

from .registry import lifespan_registry

logger = logging.getLogger(__name__)


@lifespan_registry.register(name="core", startup_order=1)
async def startup_core(
    app_settings: AppSettings,
    log_settings: LoggingSettings,
    **kwargs: object,
) -> None:
    """Configure logging and announce the service."""
    setup_logging(log_settings=log_settings, force=True)
    logger.info(
        "Application starting",
        extra={
            "service": app_settings.service_name,
            "environment": app_settings.environment,
            "version": app_settings.version,
        },
    )


@lifespan_registry.register(name="core")
async def shutdown_core(**kwargs: object) -> None:
    """Flush queued log records before the process exits."""
    from staff_service.infra.logging.config import complete

    complete()
