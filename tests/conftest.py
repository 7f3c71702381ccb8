"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings are pinned before the application is imported
    - Database Fixtures: schema on the SQLite fallback engine, sessions
    - Messaging Fixtures: fake broker, RabbitMQ settings, connection manager
    - Application Fixtures: FastAPI app and HTTP client
    - Data Fixtures: staff payloads
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure tests run without external infrastructure
_TEST_DB = Path(tempfile.mkdtemp(prefix="staff-service-tests-")) / "staff.db"
os.environ.setdefault("APP_SERVICE_NAME", "test-service")
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("DB_ENABLED", "false")
os.environ.setdefault("DB_FALLBACK_URL", f"sqlite+aiosqlite:///{_TEST_DB}")
os.environ.setdefault("DB_STARTUP_RETRY_ATTEMPTS", "1")
os.environ.setdefault("RABBIT_ENABLED", "false")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_LOG_REQUESTS", "false")

from staff_service.core.settings import RabbitSettings  # noqa: E402
from staff_service.infra.messaging import (  # noqa: E402
    BrokerConnectionManager,
    RabbitEventPublisher,
)
from tests.fake_broker import FakeBroker  # noqa: E402


class RecordingPublisher:
    """EventPublisher that keeps events in memory.

    Set ``fail_with`` to make the next publishes raise.
    """

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []
        self.fail_with: Exception | None = None

    async def publish_event(self, routing_key: str, data: dict[str, Any]) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.events.append((routing_key, data))

    @property
    def routing_keys(self) -> list[str]:
        return [key for key, _ in self.events]

    def last(self) -> tuple[str, dict[str, Any]]:
        return self.events[-1]


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_schema() -> AsyncGenerator[None]:
    """Create all tables on the application engine, drop them afterwards."""
    from staff_service.core.database import Base
    from staff_service.features.staff.models import Staff  # noqa: F401
    from staff_service.infra.database import engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest.fixture
async def db_session(db_schema):
    """Session on the application engine with a fresh schema."""
    from staff_service.infra.database import AsyncSessionLocal

    async with AsyncSessionLocal() as session:
        yield session


# ============================================================================
# Messaging Fixtures
# ============================================================================


@pytest.fixture
def fake_broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture
def rabbit_settings() -> RabbitSettings:
    """Enabled RabbitMQ settings with millisecond reconnect delays."""
    return RabbitSettings(
        enabled=True,
        reconnect_delay=0.01,
        reconnect_max_delay=0.05,
        connection_timeout=1.0,
    )


@pytest.fixture
async def manager(
    rabbit_settings: RabbitSettings, fake_broker: FakeBroker
) -> AsyncGenerator[BrokerConnectionManager]:
    """Connection manager wired to the fake broker, closed after the test."""
    broker_manager = BrokerConnectionManager(rabbit_settings, connect=fake_broker.connect)
    try:
        yield broker_manager
    finally:
        await broker_manager.close_connection()


@pytest.fixture
def recording_publisher() -> RecordingPublisher:
    return RecordingPublisher()


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
async def app(db_schema):
    """FastAPI application with a recording publisher and no broker.

    Lifespan hooks do not run under ``ASGITransport``; state is set here.
    """
    from staff_service.app.main import create_app

    application = create_app()
    application.state.broker = None
    application.state.event_publisher = RecordingPublisher()
    return application


@pytest.fixture
def published(app) -> RecordingPublisher:
    """The recording publisher installed on ``app``."""
    return app.state.event_publisher


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient]:
    """Async HTTP client for the application.

    Example:
        async def test_health_check(client):
            response = await client.get("/api/v1/health/")
            assert response.status_code == 200
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def broker_app(db_schema, manager: BrokerConnectionManager):
    """Application publishing through a real manager on the fake broker."""
    from staff_service.app.main import create_app

    application = create_app()
    await manager.initialize()
    application.state.broker = manager
    application.state.event_publisher = RabbitEventPublisher(manager)
    return application


@pytest.fixture
async def broker_client(broker_app) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=broker_app), base_url="http://test") as ac:
        yield ac


# ============================================================================
# Data Fixtures
# ============================================================================


@pytest.fixture
def staff_payload() -> dict[str, Any]:
    return {
        "name": "Jane Driver",
        "email": "Jane.Driver@Example.com",
        "role": "DRIVER",
        "contact_number": "+254 700-000-001",
        "shift_type": "DAY",
        "shift_duration": 8,
    }


@pytest.fixture
def make_staff_payload(staff_payload: dict[str, Any]):
    """Factory for distinct staff payloads: ``make_staff_payload(3, role="ADMIN")``."""

    def _make(index: int, **overrides: Any) -> dict[str, Any]:
        payload = {
            **staff_payload,
            "name": f"Staff Member {index}",
            "email": f"staff{index}@example.com",
        }
        payload.update(overrides)
        return payload

    return _make
