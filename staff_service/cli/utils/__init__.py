"""CLI utilities for running async operations and formatting output."""

from staff_service.cli.utils.async_runner import coro, run_async
from staff_service.cli.utils.formatters import (
    error,
    header,
    info,
    key_values,
    success,
    warning,
)

__all__ = [
    "coro",
    "error",
    "header",
    "info",
    "key_values",
    "run_async",
    "success",
    "warning",
]
