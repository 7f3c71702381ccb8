"""RabbitMQ inspection commands."""

from __future__ import annotations

import sys

import click

from staff_service.cli.utils import coro, error, header, info, key_values, success
from staff_service.core.settings import get_rabbit_settings
from staff_service.infra.messaging import (
    BrokerConnectionError,
    BrokerConnectionManager,
    Topology,
    get_dead_letter_queue_name,
)


@click.group(name="broker")
def broker() -> None:
    """RabbitMQ connection and topology commands."""


@broker.command(name="check")
@coro
async def check() -> None:
    """Connect once, declare the topology, print the connection health."""
    settings = get_rabbit_settings()
    if not settings.is_configured:
        error("RabbitMQ is disabled (RABBIT_ENABLED=false)")
        sys.exit(1)

    header("RabbitMQ")
    info(f"Connecting to {settings.safe_url}")

    manager = BrokerConnectionManager(settings)
    try:
        await manager.initialize()
        key_values(manager.health())
    except BrokerConnectionError as e:
        key_values(manager.health())
        error(str(e))
        sys.exit(1)
    finally:
        await manager.close_connection()

    success("RabbitMQ is reachable and the topology is declared")


@broker.command(name="topology")
def topology() -> None:
    """Print the exchanges, queues and bindings this service declares."""
    settings = get_rabbit_settings()
    declared = Topology.from_settings(settings)

    header("Exchanges")
    key_values(
        {
            declared.exchange_name: declared.exchange_type,
            declared.dead_letter_exchange: "direct (dead letters)",
        }
    )

    header("Queues")
    for queue in declared.queues:
        bindings = ", ".join(declared.exchange_bindings(queue)) or "(unbound)"
        click.echo(f"  {queue.name}  <-  {declared.exchange_name} [{bindings}]")
        if declared.dead_letter_queues:
            parking = get_dead_letter_queue_name(queue.name)
            dead = ", ".join(declared.dead_letter_bindings(queue))
            click.echo(f"  {parking}  <-  {declared.dead_letter_exchange} [{dead}]")
