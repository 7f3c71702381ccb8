"""Consumer worker command."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

import click

from staff_service.cli.utils import coro, error, info, success, warning
from staff_service.core.settings import get_rabbit_settings
from staff_service.infra.messaging import (
    QUEUE_NAMES,
    BrokerConnectionError,
    BrokerConnectionManager,
    EventConsumer,
)
from staff_service.infra.messaging.handlers import get_handler

logger = logging.getLogger(__name__)

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


async def run_worker(
    manager: BrokerConnectionManager,
    queue_name: str,
    stop: asyncio.Event,
    *,
    install_signal_handlers: bool = True,
) -> bool:
    """Consume ``queue_name`` until ``stop`` is set, then close the connection.

    ``stop`` also ends the reconnect loop when the broker is unreachable at
    startup. Returns False when the broker could not be reached and the
    reconnect policy gave up.
    """
    loop = asyncio.get_running_loop()
    if install_signal_handlers:
        for sig in STOP_SIGNALS:
            loop.add_signal_handler(sig, _request_stop, stop, sig)

    consumer = EventConsumer(manager)
    try:
        try:
            await manager.initialize()
        except BrokerConnectionError as e:
            logger.warning("RabbitMQ unavailable, retrying", extra={"error": str(e)})
            connected = await _reconnect_until_stopped(manager, stop)
            if connected is None:
                logger.info("Worker stopped before RabbitMQ was reachable")
                return True
            if not connected:
                return False

        await consumer.start_consuming(queue_name, get_handler(queue_name))
        logger.info("Worker consuming", extra={"queue": queue_name})
        await stop.wait()
        return True
    finally:
        if install_signal_handlers:
            for sig in STOP_SIGNALS:
                loop.remove_signal_handler(sig)
        await consumer.stop_consuming()
        await manager.close_connection()


async def _reconnect_until_stopped(
    manager: BrokerConnectionManager, stop: asyncio.Event
) -> bool | None:
    """Run ``retry_connect()`` until it finishes or ``stop`` is set.

    Returns the reconnect result, or None when ``stop`` came first.
    """
    reconnect = asyncio.create_task(manager.retry_connect(), name="rabbitmq-worker-reconnect")
    stopped = asyncio.create_task(stop.wait(), name="rabbitmq-worker-stop")
    try:
        await asyncio.wait({reconnect, stopped}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (reconnect, stopped):
            if not task.done():
                task.cancel()
        await asyncio.gather(reconnect, stopped, return_exceptions=True)

    if reconnect.cancelled():
        return None
    return reconnect.result()


def _request_stop(stop: asyncio.Event, sig: signal.Signals) -> None:
    logger.info("Received %s, shutting down worker", sig.name)
    stop.set()


@click.command(name="consume")
@click.argument("queue", type=click.Choice(QUEUE_NAMES))
@coro
async def consume(queue: str) -> None:
    """Consume QUEUE with its default handler until SIGINT/SIGTERM."""
    settings = get_rabbit_settings()
    if not settings.is_configured:
        error("RabbitMQ is disabled (RABBIT_ENABLED=false)")
        sys.exit(1)

    info(f"Consuming {queue} from {settings.safe_url} (Ctrl+C to stop)")
    manager = BrokerConnectionManager(settings)
    if not await run_worker(manager, queue, asyncio.Event()):
        warning("Reconnect attempts exhausted")
        error(f"Could not connect to {settings.safe_url}")
        sys.exit(1)
    success("Worker stopped")
