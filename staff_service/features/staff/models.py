"""SQLAlchemy models for the staff feature."""

from __future__ import annotations

from enum import StrEnum

from sqlalchemy import Enum, Float, String
from sqlalchemy.orm import Mapped, mapped_column

from staff_service.core.database import Base, TimestampMixin, UUIDPKMixin


class StaffRole(StrEnum):
    DRIVER = "DRIVER"
    CONDUCTOR = "CONDUCTOR"
    ADMIN = "ADMIN"


class StaffStatus(StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ShiftType(StrEnum):
    DAY = "DAY"
    NIGHT = "NIGHT"


def _enum_column(enum_cls: type[StrEnum], name: str) -> Enum:
    # Store the enum values as VARCHAR with a CHECK constraint
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


class Staff(Base, UUIDPKMixin, TimestampMixin):
    """A driver, conductor or admin of the transit operator.

    Bus and route ids belong to other services and are stored as opaque
    strings without foreign keys.
    """

    __tablename__ = "staff"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    role: Mapped[StaffRole] = mapped_column(
        _enum_column(StaffRole, "staff_role"), index=True, nullable=False
    )
    contact_number: Mapped[str] = mapped_column(String(32), nullable=False)
    assigned_bus_id: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    assigned_route_id: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    status: Mapped[StaffStatus] = mapped_column(
        _enum_column(StaffStatus, "staff_status"),
        index=True,
        default=StaffStatus.ACTIVE,
        nullable=False,
    )
    shift_type: Mapped[ShiftType] = mapped_column(
        _enum_column(ShiftType, "shift_type"),
        default=ShiftType.DAY,
        nullable=False,
    )
    shift_duration: Mapped[float | None] = mapped_column(
        Float(),
        nullable=True,
        comment="Shift length in hours",
    )

    @property
    def is_active(self) -> bool:
        return self.status == StaffStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Staff id={self.id} email={self.email!r} role={self.role}>"
