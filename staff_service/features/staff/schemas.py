"""Pydantic schemas for the staff feature."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from .models import ShiftType, StaffRole, StaffStatus

CONTACT_NUMBER_PATTERN = r"^\+?[\d\s-]+$"
_REQUIRED_ON_ENTITY = ("name", "email", "role", "contact_number", "status", "shift_type")


def _normalize_email(v: str) -> str:
    return v.strip().lower()


class StaffBase(BaseModel):
    """Shared attributes for staff payloads."""

    name: str = Field(..., min_length=2, max_length=100, description="Full name")
    email: EmailStr = Field(..., description="Unique email address (stored lowercase)")
    role: StaffRole = Field(..., description="DRIVER, CONDUCTOR or ADMIN")
    contact_number: str = Field(
        ...,
        max_length=32,
        pattern=CONTACT_NUMBER_PATTERN,
        description="Phone number, digits with optional leading '+', spaces and dashes",
    )
    shift_type: ShiftType = Field(default=ShiftType.DAY)
    shift_duration: float | None = Field(default=None, gt=0, le=24, description="Hours")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


class StaffCreate(StaffBase):
    """Payload used when creating a staff member."""

    assigned_bus_id: str | None = Field(default=None, min_length=1, max_length=64)
    assigned_route_id: str | None = Field(default=None, min_length=1, max_length=64)
    status: StaffStatus = Field(default=StaffStatus.ACTIVE)


class StaffUpdate(BaseModel):
    """Partial update. Only fields present in the request are applied."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=2, max_length=100)
    email: EmailStr | None = None
    role: StaffRole | None = None
    contact_number: str | None = Field(default=None, max_length=32, pattern=CONTACT_NUMBER_PATTERN)
    assigned_bus_id: str | None = Field(default=None, max_length=64)
    assigned_route_id: str | None = Field(default=None, max_length=64)
    status: StaffStatus | None = None
    shift_type: ShiftType | None = None
    shift_duration: float | None = Field(default=None, gt=0, le=24)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        return _normalize_email(v) if v is not None else v

    @model_validator(mode="after")
    def reject_nulls(self) -> StaffUpdate:
        for field in _REQUIRED_ON_ENTITY:
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    def changes(self) -> dict[str, object]:
        """Fields explicitly sent by the client, JSON-ready."""
        return self.model_dump(mode="json", exclude_unset=True)


class StaffResponse(BaseModel):
    """Representation returned from the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role: StaffRole
    contact_number: str
    assigned_bus_id: str | None = None
    assigned_route_id: str | None = None
    status: StaffStatus
    shift_type: ShiftType
    shift_duration: float | None = None
    created_at: datetime
    updated_at: datetime


class StaffListResponse(BaseModel):
    """One page of staff members."""

    staff: list[StaffResponse]
    total: int = Field(..., ge=0, description="Matches across all pages")
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)


class AssignBusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bus_id: str = Field(..., alias="busId", min_length=1, max_length=64)


class AssignRouteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    route_id: str = Field(..., alias="routeId", min_length=1, max_length=64)


class StatusUpdateRequest(BaseModel):
    status: StaffStatus
