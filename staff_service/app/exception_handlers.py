"""Global exception handlers for the FastAPI application.

Every error leaves the service as an RFC 7807 problem document
(``application/problem+json``) carrying the request id.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from staff_service.core.exceptions import AppException
from staff_service.core.schemas.error import (
    ProblemDetail,
    ValidationError,
    ValidationProblemDetail,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fastapi import FastAPI

logger = logging.getLogger(__name__)

PROBLEM_JSON = "application/problem+json"


def _get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _create_problem_detail(
    *,
    status_code: int,
    type: str,
    title: str | None,
    detail: str | None,
    instance: str,
) -> ProblemDetail:
    return ProblemDetail(
        type=type,
        title=title or ProblemDetail.default_title(status_code),
        status=status_code,
        detail=detail,
        instance=instance,
    )


def _problem_response(
    status_code: int, content: dict[str, Any], request: Request
) -> JSONResponse:
    request_id = _get_request_id(request)
    if request_id:
        content["request_id"] = request_id
    return JSONResponse(status_code=status_code, content=content, media_type=PROBLEM_JSON)


def _validation_errors(errors: Sequence[Any]) -> list[ValidationError]:
    items = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        value = error.get("input")
        items.append(
            ValidationError(
                field=".".join(location) or "body",
                message=error.get("msg", "Invalid value"),
                type=error.get("type", "value_error"),
                value=value if isinstance(value, str | int | float | bool) else None,
            )
        )
    return items


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Render ``AppException`` subclasses as problem details."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"Application error: {exc.detail}",
        extra={
            "status_code": exc.status_code,
            "error_type": exc.type,
            "path": request.url.path,
            "method": request.method,
            **exc.extra,
        },
    )

    problem = _create_problem_detail(
        status_code=exc.status_code,
        type=exc.type,
        title=exc.title,
        detail=exc.detail,
        instance=exc.instance or request.url.path,
    )
    content = problem.model_dump(mode="json", exclude_none=True)
    content.update(exc.extra)
    return _problem_response(exc.status_code, content, request)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation failures as a 422 problem with per-field errors."""
    errors = _validation_errors(exc.errors())
    logger.info(
        "Request validation failed",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_count": len(errors),
            "fields": [e.field for e in errors],
        },
    )

    problem = ValidationProblemDetail(
        type="validation-error",
        title="Validation Error",
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=f"Request validation failed with {len(errors)} error(s)",
        instance=request.url.path,
        errors=errors,
    )
    return _problem_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        problem.model_dump(mode="json", exclude_none=True),
        request,
    )


async def pydantic_validation_exception_handler(
    request: Request, exc: PydanticValidationError
) -> JSONResponse:
    """Pydantic errors raised outside request parsing are server bugs: 500."""
    logger.error(
        "Model validation failed while handling request",
        extra={
            "path": request.url.path,
            "method": request.method,
            "model": exc.title,
            "error_count": exc.error_count(),
        },
    )

    problem = _create_problem_detail(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        type="internal-error",
        title=None,
        detail="An unexpected error occurred",
        instance=request.url.path,
    )
    return _problem_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        problem.model_dump(mode="json", exclude_none=True),
        request,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback and hide internals from the client."""
    logger.error(
        f"Unhandled exception: {type(exc).__name__}",
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )

    problem = _create_problem_detail(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        type="internal-error",
        title=None,
        detail="An unexpected error occurred",
        instance=request.url.path,
    )
    return _problem_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        problem.model_dump(mode="json", exclude_none=True),
        request,
    )


def configure_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the application."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, pydantic_validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
