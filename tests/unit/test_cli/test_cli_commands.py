"""Tests for the staff-service CLI commands."""

from __future__ import annotations

import asyncio
import os
import signal
import sys

from click.testing import CliRunner
import pytest

from staff_service.cli.commands import broker as broker_commands
from staff_service.cli.commands import server as server_commands
from staff_service.cli.commands.consume import run_worker
from staff_service.cli.main import cli
from staff_service.core.settings import RabbitSettings
from staff_service.infra.messaging import (
    BrokerConnectionManager,
    RabbitEventPublisher,
    ReconnectPolicy,
)
from tests.fake_broker import FakeBroker, wait_until


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.mark.unit
class TestBrokerCommands:
    def test_topology_lists_queues_and_bindings(self, runner):
        result = runner.invoke(cli, ["broker", "topology"])

        assert result.exit_code == 0, result.output
        assert "bus_booking_events" in result.output
        assert (
            "staff_events  <-  bus_booking_events [staff.created, staff.updated, staff.deleted]"
            in result.output
        )
        assert "bus_events  <-  bus_booking_events [(unbound)]" in result.output
        assert "staff_events.dead  <-  bus_booking_events.dlx" in result.output

    def test_check_fails_when_disabled(self, runner):
        result = runner.invoke(cli, ["broker", "check"])

        assert result.exit_code == 1
        assert "RabbitMQ is disabled" in result.output

    def test_check_reports_health(self, runner, monkeypatch, rabbit_settings):
        fake = FakeBroker()
        monkeypatch.setattr(broker_commands, "get_rabbit_settings", lambda: rabbit_settings)
        monkeypatch.setattr(
            broker_commands,
            "BrokerConnectionManager",
            lambda settings: BrokerConnectionManager(settings, connect=fake.connect),
        )

        result = runner.invoke(cli, ["broker", "check"])

        assert result.exit_code == 0, result.output
        assert "healthy" in result.output
        assert "topology is declared" in result.output
        assert fake.open_connections == []

    def test_check_reports_unreachable_broker(self, runner, monkeypatch, rabbit_settings):
        fake = FakeBroker()
        fake.refuse_forever = True
        monkeypatch.setattr(broker_commands, "get_rabbit_settings", lambda: rabbit_settings)
        monkeypatch.setattr(
            broker_commands,
            "BrokerConnectionManager",
            lambda settings: BrokerConnectionManager(settings, connect=fake.connect),
        )

        result = runner.invoke(cli, ["broker", "check"])

        assert result.exit_code == 1
        assert "Connection refused" in result.output


@pytest.mark.unit
class TestServerCommand:
    def test_server_runs_uvicorn(self, runner, monkeypatch):
        calls: list[tuple[str, dict]] = []
        monkeypatch.setattr(
            server_commands.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs))
        )

        result = runner.invoke(cli, ["server", "--port", "8080", "--reload", "--workers", "3"])

        assert result.exit_code == 0, result.output
        [(app, kwargs)] = calls
        assert app == "staff_service.app.main:app"
        assert kwargs["port"] == 8080
        assert kwargs["reload"] is True
        assert kwargs["workers"] == 1
        assert kwargs["log_config"] is None


@pytest.mark.unit
def test_consume_rejects_unknown_queue(runner):
    result = runner.invoke(cli, ["consume", "payments"])

    assert result.exit_code == 2


@pytest.mark.unit
def test_version(runner):
    result = runner.invoke(cli, ["--version"])

    assert "staff-service, version 1.0.0" in result.output


@pytest.mark.unit
class TestRunWorker:
    @pytest.mark.asyncio
    async def test_consumes_until_stopped(self, manager, fake_broker):
        stop = asyncio.Event()
        worker = asyncio.create_task(
            run_worker(manager, "staff_events", stop, install_signal_handlers=False)
        )
        await wait_until(
            lambda: "staff_events" in fake_broker.queues
            and fake_broker.queues["staff_events"].active_consumers()
        )

        await RabbitEventPublisher(manager).publish_event("staff.created", {"staffId": "abc"})
        await fake_broker.drain()
        stop.set()

        assert await worker is True
        assert len(fake_broker.queues["staff_events"].acked) == 1
        assert fake_broker.open_connections == []

    @pytest.mark.asyncio
    async def test_gives_up_when_reconnect_policy_is_exhausted(self):
        broker = FakeBroker()
        broker.refuse_forever = True
        manager = BrokerConnectionManager(
            RabbitSettings(enabled=True),
            policy=ReconnectPolicy(delay=0.001, max_attempts=2),
            connect=broker.connect,
        )

        result = await run_worker(
            manager, "staff_events", asyncio.Event(), install_signal_handlers=False
        )

        assert result is False
        assert broker.connect_calls == 3

    @pytest.mark.asyncio
    async def test_stop_ends_unbounded_reconnect(self):
        broker = FakeBroker()
        broker.refuse_forever = True
        manager = BrokerConnectionManager(
            RabbitSettings(enabled=True),
            policy=ReconnectPolicy(delay=0.01),
            connect=broker.connect,
        )
        stop = asyncio.Event()
        worker = asyncio.create_task(
            run_worker(manager, "staff_events", stop, install_signal_handlers=False)
        )
        await wait_until(lambda: broker.connect_calls >= 3)

        stop.set()

        assert await asyncio.wait_for(worker, timeout=1.0) is True
        assert not manager.reconnecting
        calls = broker.connect_calls
        await asyncio.sleep(0.05)
        assert broker.connect_calls == calls

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="loop signal handlers need POSIX")
    async def test_sigterm_stops_worker_while_broker_is_down(self):
        broker = FakeBroker()
        broker.refuse_forever = True
        manager = BrokerConnectionManager(
            RabbitSettings(enabled=True),
            policy=ReconnectPolicy(delay=0.01),
            connect=broker.connect,
        )
        worker = asyncio.create_task(run_worker(manager, "staff_events", asyncio.Event()))
        await wait_until(lambda: broker.connect_calls >= 2)

        os.kill(os.getpid(), signal.SIGTERM)

        assert await asyncio.wait_for(worker, timeout=1.0) is True
        assert not manager.reconnecting
        assert broker.open_connections == []
