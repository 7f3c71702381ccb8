"""Health check API endpoints.

- ``/health/``      full status with database and messaging checks
- ``/health/live``  liveness probe
- ``/health/ready`` readiness probe (503 until dependencies are up)
"""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Response, status

from staff_service.core.settings import get_app_settings

from .schemas import HealthResponse, LivenessResponse, ReadinessResponse

# Runtime import so FastAPI resolves the Annotated Depends metadata
from .service import HealthServiceDep  # noqa: TC001

router = APIRouter(prefix="/health", tags=["health"])


@router.get(
    "/",
    response_model=HealthResponse,
    summary="Comprehensive health check",
    description="Overall status plus database and messaging checks",
)
async def health_check(service: HealthServiceDep) -> HealthResponse:
    result = await service.check_health()
    return HealthResponse(**result)


@router.get("/live", response_model=LivenessResponse, summary="Liveness probe")
async def liveness() -> LivenessResponse:
    return LivenessResponse(
        alive=True,
        timestamp=datetime.now(UTC),
        service=get_app_settings().service_name,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    responses={503: {"description": "A dependency is not ready"}},
)
async def readiness(service: HealthServiceDep, response: Response) -> ReadinessResponse:
    checks = await service.readiness()
    ready = all(checks.values())
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(ready=ready, checks=checks, timestamp=datetime.now(UTC))
