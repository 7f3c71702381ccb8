"""Service layer for the staff feature.

Every mutation commits first and then publishes exactly one event. The
publish is not part of the transaction: if it fails the change stays
committed and the caller gets an ``EventPublishException``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic.alias_generators import to_camel
from sqlalchemy.exc import IntegrityError

from staff_service.core.exceptions import (
    BadRequestException,
    ConflictException,
    EventPublishException,
    NotFoundException,
)
from staff_service.core.services import BaseService

from .events import (
    StaffBusAssignmentEvent,
    StaffCreatedEvent,
    StaffDeletedEvent,
    StaffEvent,
    StaffRouteAssignmentEvent,
    StaffStatusUpdatedEvent,
    StaffUpdatedEvent,
)
from .models import Staff, StaffStatus
from .repository import StaffRepository, get_staff_repository

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from staff_service.core.database import SearchResult
    from staff_service.core.dependencies.messaging import EventPublisher

    from .models import StaffRole
    from .schemas import StaffCreate, StaffUpdate


class StaffService(BaseService):
    """Staff CRUD, assignments and status changes with event publication."""

    def __init__(
        self,
        session: AsyncSession,
        publisher: EventPublisher | None = None,
        repo: StaffRepository | None = None,
    ) -> None:
        super().__init__()
        self._session = session
        self._publisher = publisher
        self._repo = repo or get_staff_repository()

    # ──────────────────────────────────────────────────────
    # Queries
    # ──────────────────────────────────────────────────────

    async def get_staff(self, staff_id: UUID) -> Staff:
        """Raises NotFoundException when no staff member has ``staff_id``."""
        staff = await self._repo.get(self._session, staff_id)
        if staff is None:
            raise NotFoundException(
                detail="Staff not found",
                type="staff-not-found",
                extra={"staff_id": str(staff_id)},
            )
        return staff

    async def list_staff(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        role: StaffRole | None = None,
        status: StaffStatus | None = None,
        bus_id: str | None = None,
        route_id: str | None = None,
    ) -> SearchResult[Staff]:
        return await self._repo.list_filtered(
            self._session,
            page=page,
            limit=limit,
            role=role,
            status=status,
            bus_id=bus_id,
            route_id=route_id,
        )

    # ──────────────────────────────────────────────────────
    # Mutations
    # ──────────────────────────────────────────────────────

    async def create_staff(self, payload: StaffCreate) -> Staff:
        """Create a staff member and publish ``staff.created``.

        Raises:
            ConflictException: If the email is already registered.
        """
        await self._ensure_email_free(payload.email)

        staff = Staff(**payload.model_dump())
        await self._commit(email=payload.email, new=staff)

        self.logger.info(
            "Staff created",
            extra={"staff_id": str(staff.id), "role": staff.role.value},
        )
        await self._publish(StaffCreatedEvent(staff_id=str(staff.id), role=staff.role))
        return staff

    async def update_staff(self, staff_id: UUID, payload: StaffUpdate) -> Staff:
        """Apply the fields present in ``payload`` and publish ``staff.updated``.

        Raises:
            BadRequestException: If the payload is empty.
            NotFoundException: If the staff member does not exist.
            ConflictException: If the new email belongs to someone else.
        """
        changes = payload.changes()
        if not changes:
            raise BadRequestException(detail="No update data provided", type="empty-update")

        staff = await self.get_staff(staff_id)
        if "email" in changes and changes["email"] != staff.email:
            await self._ensure_email_free(changes["email"])

        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(staff, field, value)
        await self._commit(email=staff.email)

        self.logger.info(
            "Staff updated",
            extra={"staff_id": str(staff.id), "fields": sorted(changes)},
        )
        updates = {to_camel(field): value for field, value in changes.items()}
        await self._publish(StaffUpdatedEvent(staff_id=str(staff.id), updates=updates))
        return staff

    async def delete_staff(self, staff_id: UUID) -> None:
        staff = await self.get_staff(staff_id)
        await self._repo.delete(self._session, staff)
        await self._session.commit()

        self.logger.info("Staff deleted", extra={"staff_id": str(staff_id)})
        await self._publish(StaffDeletedEvent(staff_id=str(staff_id)))

    async def assign_bus(self, staff_id: UUID, bus_id: str) -> Staff:
        """Raises BadRequestException if the staff member is not ACTIVE."""
        staff = await self.get_staff(staff_id)
        self._require_active(staff)

        staff.assigned_bus_id = bus_id
        await self._session.commit()

        self.logger.info(
            "Staff assigned to bus", extra={"staff_id": str(staff_id), "bus_id": bus_id}
        )
        await self._publish(StaffBusAssignmentEvent(staff_id=str(staff_id), bus_id=bus_id))
        return staff

    async def assign_route(self, staff_id: UUID, route_id: str) -> Staff:
        """Raises BadRequestException if the staff member is not ACTIVE."""
        staff = await self.get_staff(staff_id)
        self._require_active(staff)

        staff.assigned_route_id = route_id
        await self._session.commit()

        self.logger.info(
            "Staff assigned to route", extra={"staff_id": str(staff_id), "route_id": route_id}
        )
        await self._publish(StaffRouteAssignmentEvent(staff_id=str(staff_id), route_id=route_id))
        return staff

    async def unassign_bus(self, staff_id: UUID) -> Staff:
        """Raises BadRequestException if no bus is assigned."""
        staff = await self.get_staff(staff_id)
        previous = staff.assigned_bus_id
        if not previous:
            raise BadRequestException(
                detail="Staff is not assigned to any bus",
                type="staff-not-assigned",
                extra={"staff_id": str(staff_id)},
            )

        staff.assigned_bus_id = None
        await self._session.commit()

        self.logger.info(
            "Staff unassigned from bus", extra={"staff_id": str(staff_id), "bus_id": previous}
        )
        await self._publish(
            StaffBusAssignmentEvent(
                staff_id=str(staff_id), previous_bus_id=previous, action="unassigned"
            )
        )
        return staff

    async def unassign_route(self, staff_id: UUID) -> Staff:
        """Raises BadRequestException if no route is assigned."""
        staff = await self.get_staff(staff_id)
        previous = staff.assigned_route_id
        if not previous:
            raise BadRequestException(
                detail="Staff is not assigned to any route",
                type="staff-not-assigned",
                extra={"staff_id": str(staff_id)},
            )

        staff.assigned_route_id = None
        await self._session.commit()

        self.logger.info(
            "Staff unassigned from route", extra={"staff_id": str(staff_id), "route_id": previous}
        )
        await self._publish(
            StaffRouteAssignmentEvent(
                staff_id=str(staff_id), previous_route_id=previous, action="unassigned"
            )
        )
        return staff

    async def update_status(self, staff_id: UUID, status: StaffStatus) -> Staff:
        staff = await self.get_staff(staff_id)
        staff.status = status
        await self._session.commit()

        self.logger.info(
            "Staff status updated", extra={"staff_id": str(staff_id), "status": status.value}
        )
        await self._publish(StaffStatusUpdatedEvent(staff_id=str(staff_id), status=status))
        return staff

    # ──────────────────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────────────────

    async def _ensure_email_free(self, email: str) -> None:
        if await self._repo.get_by_email(self._session, email) is not None:
            raise self._email_conflict(email)

    @staticmethod
    def _email_conflict(email: str) -> ConflictException:
        return ConflictException(
            detail="Staff with this email already exists",
            type="staff-email-conflict",
            extra={"field": "email", "email": email},
        )

    async def _commit(self, *, email: str, new: Staff | None = None) -> None:
        # The unique index still guards against a concurrent insert of the same email
        try:
            if new is not None:
                await self._repo.create(self._session, new)
            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            raise self._email_conflict(email) from e

    @staticmethod
    def _require_active(staff: Staff) -> None:
        if staff.status != StaffStatus.ACTIVE:
            raise BadRequestException(
                detail="Staff is not active",
                type="staff-not-active",
                extra={"staff_id": str(staff.id), "status": staff.status.value},
            )

    async def _publish(self, event: StaffEvent) -> None:
        if self._publisher is None:
            msg = "StaffService was created without an event publisher"
            raise RuntimeError(msg)

        try:
            await self._publisher.publish_event(event.routing_key, event.to_payload())
        except Exception as e:
            self.logger.error(
                "Failed to publish staff event",
                exc_info=True,
                extra={"routing_key": event.routing_key, "staff_id": event.staff_id},
            )
            raise EventPublishException(
                detail=f"Failed to publish {event.routing_key} event",
                extra={"routing_key": event.routing_key, "staff_id": event.staff_id},
            ) from e
