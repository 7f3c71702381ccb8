"""API router for the staff feature.

Endpoints:
    POST   /staff/                       - Create a staff member
    GET    /staff/                       - List staff (page, limit, role, status, busId, routeId)
    GET    /staff/{staff_id}             - Get one staff member
    PUT    /staff/{staff_id}             - Update fields of a staff member
    DELETE /staff/{staff_id}             - Delete a staff member
    POST   /staff/{staff_id}/assign-bus      - Assign to a bus
    POST   /staff/{staff_id}/assign-route    - Assign to a route
    POST   /staff/{staff_id}/unassign-bus    - Remove the bus assignment
    POST   /staff/{staff_id}/unassign-route  - Remove the route assignment
    PATCH  /staff/{staff_id}/status          - Change ACTIVE/INACTIVE status

Every mutating endpoint publishes one domain event after the write. They
answer 503 when messaging is disabled, before anything is written.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from staff_service.core.dependencies.database import DbSession
from staff_service.core.dependencies.messaging import EventPublisherDep

from .models import StaffRole, StaffStatus
from .schemas import (
    AssignBusRequest,
    AssignRouteRequest,
    StaffCreate,
    StaffListResponse,
    StaffResponse,
    StaffUpdate,
    StatusUpdateRequest,
)
from .service import StaffService

router = APIRouter(prefix="/staff", tags=["staff"])

_NOT_FOUND = {404: {"description": "Staff not found"}}
_PUBLISH_FAILED = {500: {"description": "Change saved but the event could not be published"}}


# ──────────────────────────────────────────────────────────────
# CRUD
# ──────────────────────────────────────────────────────────────


@router.post(
    "/",
    response_model=StaffResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a staff member",
    responses={409: {"description": "Email already registered"}, **_PUBLISH_FAILED},
)
async def create_staff(
    payload: StaffCreate,
    session: DbSession,
    publisher: EventPublisherDep,
) -> StaffResponse:
    staff = await StaffService(session, publisher).create_staff(payload)
    return StaffResponse.model_validate(staff)


@router.get(
    "/",
    response_model=StaffListResponse,
    summary="List staff members",
)
async def list_staff(
    session: DbSession,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    role: StaffRole | None = None,
    staff_status: Annotated[StaffStatus | None, Query(alias="status")] = None,
    bus_id: Annotated[str | None, Query(alias="busId")] = None,
    route_id: Annotated[str | None, Query(alias="routeId")] = None,
) -> StaffListResponse:
    """List staff, newest first. Empty filters are ignored."""
    result = await StaffService(session).list_staff(
        page=page,
        limit=limit,
        role=role,
        status=staff_status,
        bus_id=bus_id,
        route_id=route_id,
    )
    return StaffListResponse(
        staff=[StaffResponse.model_validate(s) for s in result.items],
        total=result.total,
        page=page,
        limit=limit,
    )


@router.get(
    "/{staff_id}",
    response_model=StaffResponse,
    summary="Get a staff member",
    responses=_NOT_FOUND,
)
async def get_staff(staff_id: UUID, session: DbSession) -> StaffResponse:
    staff = await StaffService(session).get_staff(staff_id)
    return StaffResponse.model_validate(staff)


@router.put(
    "/{staff_id}",
    response_model=StaffResponse,
    summary="Update a staff member",
    description="Only fields present in the body are changed.",
    responses={400: {"description": "Empty update"}, **_NOT_FOUND, **_PUBLISH_FAILED},
)
async def update_staff(
    staff_id: UUID,
    payload: StaffUpdate,
    session: DbSession,
    publisher: EventPublisherDep,
) -> StaffResponse:
    staff = await StaffService(session, publisher).update_staff(staff_id, payload)
    return StaffResponse.model_validate(staff)


@router.delete(
    "/{staff_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a staff member",
    responses={**_NOT_FOUND, **_PUBLISH_FAILED},
)
async def delete_staff(
    staff_id: UUID,
    session: DbSession,
    publisher: EventPublisherDep,
) -> None:
    await StaffService(session, publisher).delete_staff(staff_id)


# ──────────────────────────────────────────────────────────────
# Assignments and status
# ──────────────────────────────────────────────────────────────


@router.post(
    "/{staff_id}/assign-bus",
    response_model=StaffResponse,
    summary="Assign a staff member to a bus",
    responses={400: {"description": "Staff is not active"}, **_NOT_FOUND},
)
async def assign_bus(
    staff_id: UUID,
    payload: AssignBusRequest,
    session: DbSession,
    publisher: EventPublisherDep,
) -> StaffResponse:
    staff = await StaffService(session, publisher).assign_bus(staff_id, payload.bus_id)
    return StaffResponse.model_validate(staff)


@router.post(
    "/{staff_id}/assign-route",
    response_model=StaffResponse,
    summary="Assign a staff member to a route",
    responses={400: {"description": "Staff is not active"}, **_NOT_FOUND},
)
async def assign_route(
    staff_id: UUID,
    payload: AssignRouteRequest,
    session: DbSession,
    publisher: EventPublisherDep,
) -> StaffResponse:
    staff = await StaffService(session, publisher).assign_route(staff_id, payload.route_id)
    return StaffResponse.model_validate(staff)


@router.post(
    "/{staff_id}/unassign-bus",
    response_model=StaffResponse,
    summary="Remove a staff member's bus assignment",
    responses={400: {"description": "No bus assigned"}, **_NOT_FOUND},
)
async def unassign_bus(
    staff_id: UUID,
    session: DbSession,
    publisher: EventPublisherDep,
) -> StaffResponse:
    staff = await StaffService(session, publisher).unassign_bus(staff_id)
    return StaffResponse.model_validate(staff)


@router.post(
    "/{staff_id}/unassign-route",
    response_model=StaffResponse,
    summary="Remove a staff member's route assignment",
    responses={400: {"description": "No route assigned"}, **_NOT_FOUND},
)
async def unassign_route(
    staff_id: UUID,
    session: DbSession,
    publisher: EventPublisherDep,
) -> StaffResponse:
    staff = await StaffService(session, publisher).unassign_route(staff_id)
    return StaffResponse.model_validate(staff)


@router.patch(
    "/{staff_id}/status",
    response_model=StaffResponse,
    summary="Change a staff member's status",
    responses=_NOT_FOUND,
)
async def update_status(
    staff_id: UUID,
    payload: StatusUpdateRequest,
    session: DbSession,
    publisher: EventPublisherDep,
) -> StaffResponse:
    staff = await StaffService(session, publisher).update_status(staff_id, payload.status)
    return StaffResponse.model_validate(staff)
