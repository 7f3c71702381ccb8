"""Server command: run the HTTP API with uvicorn."""

from __future__ import annotations

import click
import uvicorn

from staff_service.cli.utils import info, warning
from staff_service.core.settings import get_app_settings

APP_IMPORT_PATH = "staff_service.app.main:app"


@click.command(name="server")
@click.option("--host", default=None, help="Host to bind (default: APP_HOST)")
@click.option("--port", default=None, type=int, help="Port to bind (default: APP_PORT)")
@click.option("--reload/--no-reload", default=False, help="Enable auto-reload on code changes")
@click.option("--workers", default=1, type=click.IntRange(min=1), help="Number of worker processes")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["critical", "error", "warning", "info", "debug"]),
    help="Uvicorn log level",
)
def server(host: str | None, port: int | None, reload: bool, workers: int, log_level: str) -> None:
    """Run the staff API server."""
    settings = get_app_settings()
    host = host or settings.host
    port = port or settings.port

    if reload and workers > 1:
        warning("--reload is incompatible with --workers > 1. Setting workers to 1.")
        workers = 1

    info(f"Server will run at: http://{host}:{port}{settings.api_prefix}")
    info(f"Environment: {settings.environment}")

    uvicorn.run(
        APP_IMPORT_PATH,
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=log_level,
        # Logging is configured by the application lifespan
        log_config=None,
    )
