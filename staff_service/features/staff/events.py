"""Domain events emitted by the staff service.

Payloads are camelCase on the wire for the booking platform's consumers:

    staff.created         {"staffId", "role"}
    staff.updated         {"staffId", "updates"}
    staff.deleted         {"staffId"}
    staff.assigned.bus    {"staffId", "busId"}
                          or {"staffId", "previousBusId", "action": "unassigned"}
    staff.assigned.route  {"staffId", "routeId"}
                          or {"staffId", "previousRouteId", "action": "unassigned"}
    staff.status.updated  {"staffId", "status"}
"""

from __future__ import annotations

from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field

from staff_service.infra.messaging.conventions import (
    STAFF_ASSIGNED_BUS,
    STAFF_ASSIGNED_ROUTE,
    STAFF_CREATED,
    STAFF_DELETED,
    STAFF_STATUS_UPDATED,
    STAFF_UPDATED,
)

from .models import StaffRole, StaffStatus


class StaffEvent(BaseModel):
    """Base class for staff events.

    Subclasses set ``routing_key``; ``to_payload()`` gives the JSON body.
    """

    routing_key: ClassVar[str]

    staff_id: str = Field(..., alias="staffId")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StaffCreatedEvent(StaffEvent):
    routing_key: ClassVar[str] = STAFF_CREATED

    role: StaffRole


class StaffUpdatedEvent(StaffEvent):
    routing_key: ClassVar[str] = STAFF_UPDATED

    updates: dict[str, Any]


class StaffDeletedEvent(StaffEvent):
    routing_key: ClassVar[str] = STAFF_DELETED


class StaffBusAssignmentEvent(StaffEvent):
    """Bus assignment change; ``action="unassigned"`` marks a removal."""

    routing_key: ClassVar[str] = STAFF_ASSIGNED_BUS

    bus_id: str | None = Field(default=None, alias="busId")
    previous_bus_id: str | None = Field(default=None, alias="previousBusId")
    action: Literal["unassigned"] | None = None


class StaffRouteAssignmentEvent(StaffEvent):
    """Route assignment change; ``action="unassigned"`` marks a removal."""

    routing_key: ClassVar[str] = STAFF_ASSIGNED_ROUTE

    route_id: str | None = Field(default=None, alias="routeId")
    previous_route_id: str | None = Field(default=None, alias="previousRouteId")
    action: Literal["unassigned"] | None = None


class StaffStatusUpdatedEvent(StaffEvent):
    routing_key: ClassVar[str] = STAFF_STATUS_UPDATED

    status: StaffStatus
