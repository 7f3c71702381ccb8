"""Unified entry point for staff-service.

``python -m staff_service.main --server`` runs the API with settings from
configuration; anything else is handed to the click CLI.
"""

from __future__ import annotations

import sys
from typing import NoReturn


def run_fastapi_server() -> NoReturn:
    """Run the API with uvicorn using APP_/LOG_ settings."""
    import uvicorn

    from staff_service.core.settings import get_app_settings, get_logging_settings

    settings = get_app_settings()
    log_settings = get_logging_settings()

    uvicorn.run(
        "staff_service.app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        access_log=settings.debug,
        log_level=log_settings.level.lower(),
        log_config=None,
    )
    sys.exit(0)


def run_cli() -> NoReturn:
    from staff_service.cli.main import main as cli_main

    cli_main()
    sys.exit(0)


def main() -> NoReturn:
    if "--server" in sys.argv:
        sys.argv.remove("--server")
        run_fastapi_server()
    run_cli()


if __name__ == "__main__":
    main()
