from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict

from sqlalchemy import DateTime, Enum as PgEnum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hcc_portal.db.base import Base, utcnow
from hcc_portal.models.booking import enum_values


class RoomingGroupStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"


class Severity(str, Enum):
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"
    FATAL = "Fatal"


class RoomingGroup(Base):
    __tablename__ = "rooming_groups"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    group_name: Mapped[str] = mapped_column(String(255), nullable=False)
    preferred_room_type: Mapped[str | None] = mapped_column(String(64))
    special_requests: Mapped[str | None] = mapped_column(Text)
    status: Mapped[RoomingGroupStatus] = mapped_column(
        PgEnum(RoomingGroupStatus, name="rooming_group_status", values_callable=enum_values),
        default=RoomingGroupStatus.DRAFT,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "group_name": self.group_name,
            "preferred_room_type": self.preferred_room_type,
            "special_requests": self.special_requests,
            "status": self.status.value,
        }


class Guest(Base):
    __tablename__ = "guests"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    rooming_group_id: Mapped[int | None] = mapped_column(ForeignKey("rooming_groups.id", ondelete="SET NULL"), index=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "full_name": self.full_name, "rooming_group_id": self.rooming_group_id}


class DietaryProfile(Base):
    __tablename__ = "dietary_profiles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    person_name: Mapped[str] = mapped_column(String(255), nullable=False)
    diet_type: Mapped[str] = mapped_column(String(64), nullable=False)
    allergy: Mapped[str | None] = mapped_column(String(255))
    severity: Mapped[Severity | None] = mapped_column(PgEnum(Severity, name="severity", values_callable=enum_values))
    notes: Mapped[str | None] = mapped_column(Text)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "person_name": self.person_name,
            "diet_type": self.diet_type,
            "allergy": self.allergy,
            "severity": self.severity.value if self.severity else None,
            "notes": self.notes,
        }
