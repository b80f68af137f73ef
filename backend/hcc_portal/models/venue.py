from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import Boolean, Date, DateTime, Enum as PgEnum, ForeignKey, Integer, Numeric, String, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hcc_portal.db.base import Base, JSONType, utcnow
from hcc_portal.models.booking import enum_values

if TYPE_CHECKING:  # pragma: no cover
    from .booking import Booking


class SpaceReservationStatus(str, Enum):
    HELD = "Held"
    CONFIRMED = "Confirmed"


class RoomAction(str, Enum):
    CLEANED = "cleaned"
    SETUP_COMPLETE = "setup_complete"


class Space(Base):
    __tablename__ = "spaces"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    capacity: Mapped[int | None] = mapped_column(Integer)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "capacity": self.capacity, "active": self.active}


class SpaceReservation(Base):
    __tablename__ = "space_reservations"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    space_id: Mapped[str] = mapped_column(ForeignKey("spaces.id", ondelete="CASCADE"), nullable=False, index=True)
    service_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[time | None] = mapped_column(Time)
    end_time: Mapped[time | None] = mapped_column(Time)
    status: Mapped[SpaceReservationStatus] = mapped_column(
        PgEnum(SpaceReservationStatus, name="space_res_status", values_callable=enum_values),
        default=SpaceReservationStatus.HELD,
        nullable=False,
    )

    booking: Mapped["Booking"] = relationship(lazy="joined")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "space_id": self.space_id,
            "service_date": self.service_date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M") if self.start_time else None,
            "end_time": self.end_time.strftime("%H:%M") if self.end_time else None,
            "status": self.status.value,
        }


class RoomType(Base):
    __tablename__ = "room_types"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    nightly_rate: Mapped[Optional[float]] = mapped_column(Numeric(10, 2))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "capacity": self.capacity,
            "nightly_rate": str(self.nightly_rate) if self.nightly_rate is not None else None,
        }


class Room(Base):
    __tablename__ = "rooms"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    room_number: Mapped[str | None] = mapped_column(String(16))
    building: Mapped[str | None] = mapped_column(String(64))
    level: Mapped[str | None] = mapped_column(String(16))
    wing: Mapped[str | None] = mapped_column(String(64))
    room_type_id: Mapped[str | None] = mapped_column(ForeignKey("room_types.id", ondelete="SET NULL"))
    base_beds: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    extra_bed_allowed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    room_type: Mapped[Optional[RoomType]] = relationship(lazy="joined")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "room_number": self.room_number,
            "building": self.building,
            "level": self.level,
            "wing": self.wing,
            "base_beds": self.base_beds,
            "extra_bed_allowed": self.extra_bed_allowed,
            "active": self.active,
            "room_type": self.room_type.to_dict() if self.room_type else None,
        }


class RoomAssignment(Base):
    __tablename__ = "room_assignments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    room_id: Mapped[str] = mapped_column(ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    guest_names: Mapped[List[str]] = mapped_column(JSONType, default=list)
    extra_bed_selected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ensuite_selected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    private_study_selected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    booking: Mapped["Booking"] = relationship(lazy="joined")

    __table_args__ = (UniqueConstraint("booking_id", "room_id", name="uq_room_assignment_booking_room"),)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "room_id": self.room_id,
            "guest_names": self.guest_names or [],
            "extra_bed_selected": self.extra_bed_selected,
            "ensuite_selected": self.ensuite_selected,
            "private_study_selected": self.private_study_selected,
        }


class RoomStatusLog(Base):
    __tablename__ = "room_status_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    room_id: Mapped[str] = mapped_column(ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    action_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    action_type: Mapped[RoomAction] = mapped_column(
        PgEnum(RoomAction, name="room_action", values_callable=enum_values),
        nullable=False,
    )
    booking_id: Mapped[int | None] = mapped_column(ForeignKey("bookings.id", ondelete="SET NULL"))
    performed_by: Mapped[int | None] = mapped_column(ForeignKey("profiles.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("room_id", "action_date", "action_type", name="uq_room_status_log_action"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "room_id": self.room_id,
            "action_date": self.action_date.isoformat(),
            "action_type": self.action_type.value,
            "booking_id": self.booking_id,
            "performed_by": self.performed_by,
        }
