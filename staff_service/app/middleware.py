"""Middleware configuration for FastAPI application."""
from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING

from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from staff_service.core.settings import get_app_settings, get_logging_settings
from staff_service.infra.logging import remove_from_log_context, set_log_context

if TYPE_CHECKING:
    from fastapi import FastAPI
    from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add request ID to all requests and bind it to the log context."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        set_log_context(request_id=request_id)

        try:
            response = await call_next(request)
        finally:
            remove_from_log_context("request_id")
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with its duration; slow requests at WARNING.

    Args:
        app: ASGI application.
        slow_threshold: Duration in seconds above which a request is slow.
        log_all: Also log requests under the threshold (at INFO).
    """

    def __init__(self, app, slow_threshold: float = 1.0, log_all: bool = True) -> None:
        super().__init__(app)
        self.slow_threshold = slow_threshold
        self.log_all = log_all

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time
        response.headers["X-Process-Time"] = f"{duration:.6f}"

        extra = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration * 1000, 2),
        }
        if duration >= self.slow_threshold:
            logger.warning(
                f"Slow request: {request.method} {request.url.path}",
                extra={**extra, "threshold_s": self.slow_threshold},
            )
        elif self.log_all:
            logger.info(f"{request.method} {request.url.path} {response.status_code}", extra=extra)
        return response


def configure_middleware(app: FastAPI) -> None:
    """Configure middleware for the application.

    Middleware added last runs first, so the request id is bound before
    the request logger emits anything.
    """
    app_settings = get_app_settings()
    log_settings = get_logging_settings()

    cors_origins = app_settings.cors_origins or ["*"]
    logger.debug(f"Configuring CORS with origins: {cors_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=app_settings.cors_allow_credentials,
        allow_methods=app_settings.cors_allow_methods,
        allow_headers=app_settings.cors_allow_headers,
        max_age=app_settings.cors_max_age,
    )

    app.add_middleware(
        RequestLoggingMiddleware,
        slow_threshold=log_settings.slow_request_threshold,
        log_all=log_settings.log_requests,
    )

    if log_settings.include_request_id:
        app.add_middleware(RequestIDMiddleware)
