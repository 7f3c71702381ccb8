"""RabbitMQ lifespan management.

Creates the process-wide ``BrokerConnectionManager`` and the event
publisher and stores both on ``app.state`` (``broker`` and
``event_publisher``). With messaging disabled both are ``None``: reads
keep working, mutating endpoints answer 503.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from staff_service.core.settings import RabbitSettings
from staff_service.infra.messaging import BrokerConnectionManager, RabbitEventPublisher

from .registry import lifespan_registry

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


@lifespan_registry.register(
    name="messaging",
    startup_order=20,
    requires=["core"],
)
async def startup_messaging(
    app: FastAPI,
    rabbit_settings: RabbitSettings,
    **kwargs: object,
) -> None:
    """Connect to RabbitMQ and declare the topology.

    When the broker is unreachable and ``startup_require_rabbit`` is off,
    startup continues and the reconnect loop keeps trying in the
    background.
    """
    if not rabbit_settings.is_configured:
        app.state.broker = None
        app.state.event_publisher = None
        logger.info("RabbitMQ disabled, event publishing unavailable")
        return

    manager = BrokerConnectionManager(rabbit_settings)
    app.state.broker = manager
    app.state.event_publisher = RabbitEventPublisher(manager)

    try:
        await manager.initialize()
        logger.info(
            "RabbitMQ connection initialized",
            extra={"exchange": rabbit_settings.exchange_name, "url": rabbit_settings.safe_url},
        )
    except Exception as e:
        if rabbit_settings.startup_require_rabbit:
            logger.error(
                "RabbitMQ required but unavailable, failing startup",
                extra={"error": str(e), "startup_require_rabbit": True},
            )
            await manager.close_connection()
            raise
        logger.warning(
            "RabbitMQ unavailable, continuing in degraded mode",
            extra={"error": str(e), "startup_require_rabbit": False},
        )
        manager.start_reconnect()


@lifespan_registry.register(name="messaging")
async def shutdown_messaging(app: FastAPI, **kwargs: object) -> None:
    manager: BrokerConnectionManager | None = getattr(app.state, "broker", None)
    if manager is not None:
        await manager.close_connection()
    app.state.event_publisher = None
