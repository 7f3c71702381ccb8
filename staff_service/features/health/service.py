"""Health evaluation for the API process."""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import Depends, Request
from sqlalchemy import text

from staff_service.core.settings import get_app_settings, get_rabbit_settings
from staff_service.infra.database import get_async_session

if TYPE_CHECKING:
    from staff_service.infra.messaging import BrokerConnectionManager

logger = logging.getLogger(__name__)

_PROCESS_STARTED = time.monotonic()


class HealthService:
    """Aggregates database and messaging health.

    ``healthy``: everything up. ``degraded``: messaging is enabled but not
    connected (reads still work, writes fail). ``unhealthy``: the database
    is unreachable.
    """

    def __init__(self, broker: BrokerConnectionManager | None) -> None:
        self._broker = broker
        self._app_settings = get_app_settings()
        self._rabbit_settings = get_rabbit_settings()

    async def check_database(self) -> dict[str, Any]:
        start = time.perf_counter()
        try:
            async with get_async_session() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning("Database health check failed", extra={"error": str(e)})
            return {"status": "unhealthy", "error": str(e)}
        return {"status": "healthy", "latency_ms": round((time.perf_counter() - start) * 1000, 2)}

    def check_messaging(self) -> dict[str, Any]:
        if self._broker is not None:
            return self._broker.health()
        if not self._rabbit_settings.enabled:
            return {"status": "disabled", "is_connected": False}
        return {"status": "unhealthy", "is_connected": False, "reason": "not initialized"}

    async def check_health(self) -> dict[str, Any]:
        database = await self.check_database()
        messaging = self.check_messaging()

        if database["status"] != "healthy":
            overall = "unhealthy"
        elif messaging["status"] == "unhealthy":
            overall = "degraded"
        else:
            overall = "healthy"

        return {
            "status": overall,
            "timestamp": datetime.now(UTC),
            "service": self._app_settings.service_name,
            "version": self._app_settings.version,
            "uptime_seconds": round(time.monotonic() - _PROCESS_STARTED, 3),
            "checks": {"database": database, "messaging": messaging},
        }

    async def readiness(self) -> dict[str, bool]:
        database = await self.check_database()
        messaging = self.check_messaging()
        return {
            "database": database["status"] == "healthy",
            "messaging": messaging["status"] in {"healthy", "disabled"},
        }


def get_health_service(request: Request) -> HealthService:
    return HealthService(getattr(request.app.state, "broker", None))


HealthServiceDep = Annotated[HealthService, Depends(get_health_service)]
