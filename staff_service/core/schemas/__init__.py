"""Shared API schemas."""

from __future__ import annotations

from .error import ProblemDetail, ValidationError, ValidationProblemDetail

__all__ = ["ProblemDetail", "ValidationError", "ValidationProblemDetail"]
