"""Health check response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

HealthStatus = Literal["healthy", "degraded", "unhealthy"]


class HealthResponse(BaseModel):
    """Comprehensive health check response.

    Example:
        ```json
        {
            "status": "degraded",
            "timestamp": "2025-01-01T00:00:00Z",
            "service": "staff-service",
            "version": "1.0.0",
            "uptime_seconds": 42.1,
            "checks": {
                "database": {"status": "healthy"},
                "messaging": {"status": "unhealthy", "state": "disconnected", "reconnecting": true}
            }
        }
        ```
    """

    status: HealthStatus = Field(description="Health status (healthy, degraded, unhealthy)")
    timestamp: datetime = Field(description="Check timestamp")
    service: str = Field(min_length=1, max_length=100, description="Service name")
    version: str = Field(min_length=1, max_length=50, description="Service version")
    uptime_seconds: float = Field(ge=0, description="Seconds since the process started")
    checks: dict[str, dict[str, Any]] = Field(
        default_factory=dict, description="Individual dependency health checks"
    )

    model_config = ConfigDict(str_strip_whitespace=True)


class LivenessResponse(BaseModel):
    """Liveness probe response: the process is up and serving requests."""

    alive: bool = Field(description="Liveness status")
    timestamp: datetime = Field(description="Check timestamp")
    service: str = Field(min_length=1, max_length=100, description="Service name")


class ReadinessResponse(BaseModel):
    """Readiness probe response. Served with 503 when not ready."""

    ready: bool = Field(description="Overall readiness status")
    checks: dict[str, bool] = Field(default_factory=dict, description="Per-dependency readiness")
    timestamp: datetime = Field(description="Check timestamp")
