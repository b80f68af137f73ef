from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, Date, DateTime, Enum as PgEnum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hcc_portal.db.base import Base, JSONType, utcnow


def enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class BookingStatus(str, Enum):
    PENDING = "Pending"
    IN_TRIAGE = "InTriage"
    APPROVED = "Approved"
    CONFIRMED = "Confirmed"
    DEPOSIT_PENDING = "DepositPending"
    DEPOSIT_RECEIVED = "DepositReceived"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    AWAITING_DETAILS = "AwaitingDetails"


class DepositStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


class BookingType(str, Enum):
    GROUP = "Group"
    INDIVIDUAL = "Individual"


class BookingSource(str, Enum):
    PORTAL = "portal"
    ADMIN_CREATED = "admin_created"


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    reference: Mapped[str | None] = mapped_column(String(32), unique=True, index=True)
    source: Mapped[BookingSource] = mapped_column(
        PgEnum(BookingSource, name="booking_source", values_callable=enum_values),
        default=BookingSource.PORTAL,
        nullable=False,
    )
    booking_type: Mapped[BookingType] = mapped_column(
        PgEnum(BookingType, name="booking_type", values_callable=enum_values),
        default=BookingType.GROUP,
        nullable=False,
    )
    customer_name: Mapped[str | None] = mapped_column(String(255))
    customer_email: Mapped[str | None] = mapped_column(String(255), index=True)
    contact_name: Mapped[str | None] = mapped_column(String(255))
    contact_phone: Mapped[str | None] = mapped_column(String(32))
    organization: Mapped[str | None] = mapped_column(String(255))
    event_type: Mapped[str | None] = mapped_column(String(64))
    event_name: Mapped[str | None] = mapped_column(String(255))
    arrival_date: Mapped[date] = mapped_column(Date, nullable=False)
    departure_date: Mapped[date] = mapped_column(Date, nullable=False)
    nights: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    headcount: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    minors: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    whole_centre: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_overnight: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    catering_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    accommodation_requests: Mapped[Dict[str, Any]] = mapped_column(JSONType, default=dict)
    requested_spaces: Mapped[List[str]] = mapped_column(JSONType, default=list)
    notes: Mapped[str | None] = mapped_column(Text)
    admin_notes: Mapped[str | None] = mapped_column(Text)
    status: Mapped[BookingStatus] = mapped_column(
        PgEnum(BookingStatus, name="booking_status", values_callable=enum_values),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True,
    )
    cancel_reason: Mapped[str | None] = mapped_column(Text)
    deposit_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    deposit_status: Mapped[DepositStatus] = mapped_column(
        PgEnum(DepositStatus, name="deposit_status", values_callable=enum_values),
        default=DepositStatus.PENDING,
        nullable=False,
    )
    deposit_received_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    deposit_reference: Mapped[str | None] = mapped_column(String(128))
    discount_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"), nullable=False)
    custom_pricing_applied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    custom_pricing_notes: Mapped[str | None] = mapped_column(Text)
    custom_pricing_token_hash: Mapped[str | None] = mapped_column(String(64))
    custom_pricing_token_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    guest_token_hash: Mapped[str | None] = mapped_column(String(64))
    customer_profile_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id", ondelete="SET NULL"))
    enquiry_id: Mapped[int | None] = mapped_column(ForeignKey("enquiries.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def display_name(self) -> str:
        return self.customer_name or self.customer_email or self.reference or "Unknown group"

    @property
    def guest_label(self) -> str:
        return self.customer_name or self.contact_name or "Guest"

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "reference": self.reference,
            "status": self.status.value,
            "customer_name": self.customer_name,
            "contact_name": self.contact_name,
            "arrival_date": self.arrival_date.isoformat(),
            "departure_date": self.departure_date.isoformat(),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.summary(),
            "source": self.source.value,
            "booking_type": self.booking_type.value,
            "customer_email": self.customer_email,
            "contact_phone": self.contact_phone,
            "organization": self.organization,
            "event_type": self.event_type,
            "event_name": self.event_name,
            "nights": self.nights,
            "headcount": self.headcount,
            "minors": self.minors,
            "whole_centre": self.whole_centre,
            "is_overnight": self.is_overnight,
            "catering_required": self.catering_required,
            "accommodation_requests": self.accommodation_requests or {},
            "requested_spaces": self.requested_spaces or [],
            "notes": self.notes,
            "admin_notes": self.admin_notes,
            "cancel_reason": self.cancel_reason,
            "deposit_amount": str(self.deposit_amount) if self.deposit_amount is not None else None,
            "deposit_status": self.deposit_status.value,
            "deposit_received_at": self.deposit_received_at.isoformat() if self.deposit_received_at else None,
            "discount_percentage": str(self.discount_percentage),
            "custom_pricing_applied": self.custom_pricing_applied,
            "custom_pricing_notes": self.custom_pricing_notes,
            "enquiry_id": self.enquiry_id,
        }
