from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import Boolean, Date, DateTime, Enum as PgEnum, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from hcc_portal.db.base import Base, JSONType, utcnow
from hcc_portal.models.booking import enum_values


class EnquiryStatus(str, Enum):
    NEW = "new"
    IN_DISCUSSION = "in_discussion"
    QUOTED = "quoted"
    READY_TO_BOOK = "ready_to_book"
    CONVERTED_TO_BOOKING = "converted_to_booking"
    LOST = "lost"


class NoteType(str, Enum):
    NOTE = "note"
    PHONE_CALL = "phone_call"
    EMAIL = "email"
    STATUS_CHANGE = "status_change"
    QUOTE_CREATED = "quote_created"
    SYSTEM = "system"


class Enquiry(Base):
    __tablename__ = "enquiries"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    reference_number: Mapped[str | None] = mapped_column(String(32), unique=True, index=True)
    customer_name: Mapped[str] = mapped_column(String(100), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str | None] = mapped_column(String(32))
    organization: Mapped[str | None] = mapped_column(String(200))
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    approximate_start_date: Mapped[date | None] = mapped_column(Date)
    approximate_end_date: Mapped[date | None] = mapped_column(Date)
    estimated_guests: Mapped[int | None] = mapped_column(Integer)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[EnquiryStatus] = mapped_column(
        PgEnum(EnquiryStatus, name="enquiry_status", values_callable=enum_values),
        default=EnquiryStatus.NEW,
        nullable=False,
        index=True,
    )
    admin_notes: Mapped[str | None] = mapped_column(Text)
    quoted_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    lost_reason: Mapped[str | None] = mapped_column(Text)
    converted_to_booking_id: Mapped[int | None] = mapped_column(Integer, index=True)
    submitted_from_ip: Mapped[str | None] = mapped_column(String(64))
    submission_duration_seconds: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def preferred_dates(self) -> str | None:
        if self.approximate_start_date and self.approximate_end_date:
            return f"{self.approximate_start_date.isoformat()} to {self.approximate_end_date.isoformat()}"
        if self.approximate_start_date:
            return self.approximate_start_date.isoformat()
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "reference_number": self.reference_number,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "organization": self.organization,
            "event_type": self.event_type,
            "approximate_start_date": self.approximate_start_date.isoformat() if self.approximate_start_date else None,
            "approximate_end_date": self.approximate_end_date.isoformat() if self.approximate_end_date else None,
            "estimated_guests": self.estimated_guests,
            "message": self.message,
            "status": self.status.value,
            "admin_notes": self.admin_notes,
            "quoted_amount": str(self.quoted_amount) if self.quoted_amount is not None else None,
            "lost_reason": self.lost_reason,
            "converted_to_booking_id": self.converted_to_booking_id,
            "submission_duration_seconds": self.submission_duration_seconds,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class EnquiryNote(Base):
    __tablename__ = "enquiry_notes"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    enquiry_id: Mapped[int] = mapped_column(ForeignKey("enquiries.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id", ondelete="SET NULL"))
    author_name: Mapped[str] = mapped_column(String(255), nullable=False)
    note_type: Mapped[NoteType] = mapped_column(
        PgEnum(NoteType, name="enquiry_note_type", values_callable=enum_values),
        default=NoteType.NOTE,
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    extras: Mapped[Dict[str, Any]] = mapped_column("metadata", JSONType, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "enquiry_id": self.enquiry_id,
            "author_id": self.author_id,
            "author_name": self.author_name,
            "note_type": self.note_type.value,
            "content": self.content,
            "metadata": self.extras or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class EnquiryQuote(Base):
    __tablename__ = "enquiry_quotes"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    enquiry_id: Mapped[int] = mapped_column(ForeignKey("enquiries.id", ondelete="CASCADE"), nullable=False, index=True)
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    reason_for_change: Mapped[str | None] = mapped_column(Text)
    is_accepted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_by: Mapped[int | None] = mapped_column(ForeignKey("profiles.id", ondelete="SET NULL"))
    created_by_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("enquiry_id", "version_number", name="uq_enquiry_quote_version"),)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "enquiry_id": self.enquiry_id,
            "version_number": self.version_number,
            "amount": str(self.amount),
            "description": self.description,
            "notes": self.notes,
            "reason_for_change": self.reason_for_change,
            "is_accepted": self.is_accepted,
            "created_by_name": self.created_by_name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
