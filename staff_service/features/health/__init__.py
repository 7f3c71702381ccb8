"""Health check feature."""

from __future__ import annotations

from .router import router
from .service import HealthService

__all__ = ["HealthService", "router"]
