"""Repository for the staff feature."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from staff_service.core.database import BaseRepository, SearchResult

from .models import Staff, StaffRole, StaffStatus

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class StaffRepository(BaseRepository[Staff]):
    """Staff persistence on top of BaseRepository's get/search/create/delete."""

    def __init__(self) -> None:
        super().__init__(Staff)

    async def get_by_email(self, session: AsyncSession, email: str) -> Staff | None:
        return await self.get_by(session, Staff.email, email.lower())

    async def list_filtered(
        self,
        session: AsyncSession,
        *,
        page: int = 1,
        limit: int = 10,
        role: StaffRole | None = None,
        status: StaffStatus | None = None,
        bus_id: str | None = None,
        route_id: str | None = None,
    ) -> SearchResult[Staff]:
        """Page through staff, newest first, applying only the filters given."""
        stmt = select(Staff)
        if role is not None:
            stmt = stmt.where(Staff.role == role)
        if status is not None:
            stmt = stmt.where(Staff.status == status)
        if bus_id:
            stmt = stmt.where(Staff.assigned_bus_id == bus_id)
        if route_id:
            stmt = stmt.where(Staff.assigned_route_id == route_id)
        stmt = stmt.order_by(Staff.created_at.desc(), Staff.id)

        return await self.search(session, stmt, limit=limit, offset=(page - 1) * limit)


_staff_repository: StaffRepository | None = None


def get_staff_repository() -> StaffRepository:
    """Shared StaffRepository instance (stateless)."""
    global _staff_repository
    if _staff_repository is None:
        _staff_repository = StaffRepository()
    return _staff_repository
