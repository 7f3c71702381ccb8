"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from staff_service.app.exception_handlers import configure_exception_handlers
from staff_service.app.lifespan import lifespan
from staff_service.app.middleware import configure_middleware
from staff_service.app.router import setup_routers
from staff_service.core.settings import get_settings


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    ``app.state.broker`` and ``app.state.event_publisher`` start as
    ``None`` and are filled by the messaging lifespan hook.
    """
    settings = get_settings()
    app_settings = settings.app

    app = FastAPI(
        title=app_settings.title,
        description=app_settings.description,
        version=app_settings.version,
        docs_url=app_settings.get_docs_url(),
        redoc_url=app_settings.get_redoc_url(),
        openapi_url=app_settings.get_openapi_url(),
        root_path=app_settings.root_path,
        debug=app_settings.debug,
        lifespan=lifespan,
    )
    app.state.broker = None
    app.state.event_publisher = None

    # Exception handlers before middleware
    configure_exception_handlers(app)
    configure_middleware(app)
    setup_routers(app, app_settings)

    return app


# Application instance for uvicorn
app = create_app()
