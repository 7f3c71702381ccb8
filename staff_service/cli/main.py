"""Main CLI entry point for staff-service management commands."""

from __future__ import annotations

import click

from staff_service.cli.commands import broker, consume, server
from staff_service.infra.logging.config import setup_logging

VERSION = "1.0.0"


@click.group()
@click.version_option(version=VERSION, prog_name="staff-service")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Staff Service CLI - run the API, consume queues, inspect RabbitMQ.

    \b
    Commands:
      server           Run the HTTP API with uvicorn
      consume QUEUE    Run a consumer worker for one queue
      broker check     Connect once and print the connection health
      broker topology  Print exchanges, queues and bindings

    \b
    Quick Start:
      staff-service broker check
      staff-service consume staff_events
      staff-service server --reload
    """
    ctx.ensure_object(dict)


cli.add_command(server.server)
cli.add_command(consume.consume)
cli.add_command(broker.broker)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
