"""Staff feature: drivers, conductors and admins with bus/route assignments."""

from __future__ import annotations

from .models import ShiftType, Staff, StaffRole, StaffStatus
from .repository import StaffRepository, get_staff_repository
from .schemas import StaffCreate, StaffListResponse, StaffResponse, StaffUpdate
from .service import StaffService

__all__ = [
    "ShiftType",
    "Staff",
    "StaffCreate",
    "StaffListResponse",
    "StaffRepository",
    "StaffResponse",
    "StaffRole",
    "StaffService",
    "StaffStatus",
    "StaffUpdate",
    "get_staff_repository",
]
