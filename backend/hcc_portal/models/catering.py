from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, List

from sqlalchemy import Boolean, Date, DateTime, Enum as PgEnum, ForeignKey, Integer, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column

from hcc_portal.db.base import Base, JSONType, utcnow
from hcc_portal.models.booking import enum_values


class MealType(str, Enum):
    BREAKFAST = "Breakfast"
    MORNING_TEA = "Morning Tea"
    LUNCH = "Lunch"
    AFTERNOON_TEA = "Afternoon Tea"
    DINNER = "Dinner"


class MealJobStatus(str, Enum):
    DRAFT = "Draft"
    PENDING_ASSIGNMENT = "PendingAssignment"
    ASSIGNED = "Assigned"
    CONFIRMED = "Confirmed"
    IN_PREP = "InPrep"
    SERVED = "Served"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class CommentAuthorRole(str, Enum):
    ADMIN = "admin"
    CATERER = "caterer"


class Caterer(Base):
    __tablename__ = "caterers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(32))
    color: Mapped[str | None] = mapped_column(String(16))
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "color": self.color,
            "active": self.active,
        }


class MenuItem(Base):
    __tablename__ = "menu_items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    allergens: Mapped[List[str]] = mapped_column(JSONType, default=list)
    dietary_tags: Mapped[List[str]] = mapped_column(JSONType, default=list)
    default_caterer_id: Mapped[int | None] = mapped_column(ForeignKey("caterers.id", ondelete="SET NULL"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "allergens": self.allergens or [],
            "dietary_tags": self.dietary_tags or [],
            "default_caterer_id": self.default_caterer_id,
        }


class MealJob(Base):
    __tablename__ = "meal_jobs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    service_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    meal: Mapped[MealType] = mapped_column(
        PgEnum(MealType, name="meal_type", values_callable=enum_values),
        nullable=False,
    )
    service_time: Mapped[time | None] = mapped_column(Time)
    counts_total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    counts_by_diet: Mapped[Dict[str, Any]] = mapped_column(JSONType, default=dict)
    percolated_coffee: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    percolated_coffee_quantity: Mapped[int | None] = mapped_column(Integer)
    assigned_caterer_id: Mapped[int | None] = mapped_column(ForeignKey("caterers.id", ondelete="SET NULL"), index=True)
    status: Mapped[MealJobStatus] = mapped_column(
        PgEnum(MealJobStatus, name="meal_job_status", values_callable=enum_values),
        default=MealJobStatus.DRAFT,
        nullable=False,
    )
    changes_requested: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class MealJobItem(Base):
    __tablename__ = "meal_job_items"

    meal_job_id: Mapped[int] = mapped_column(ForeignKey("meal_jobs.id", ondelete="CASCADE"), primary_key=True)
    menu_item_id: Mapped[int] = mapped_column(ForeignKey("menu_items.id", ondelete="CASCADE"), primary_key=True)


class MealJobComment(Base):
    __tablename__ = "meal_job_comments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    meal_job_id: Mapped[int] = mapped_column(ForeignKey("meal_jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id", ondelete="SET NULL"))
    author_role: Mapped[CommentAuthorRole] = mapped_column(
        PgEnum(CommentAuthorRole, name="comment_author_role", values_callable=enum_values),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "meal_job_id": self.meal_job_id,
            "author_id": self.author_id,
            "author_role": self.author_role.value,
            "content": self.content,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
