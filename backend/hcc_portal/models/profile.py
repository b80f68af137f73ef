from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict

from sqlalchemy import DateTime, Enum as PgEnum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from hcc_portal.db.base import Base, utcnow
from hcc_portal.models.booking import enum_values


class ProfileRole(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"
    CATERER = "caterer"
    CUSTOMER = "customer"


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[ProfileRole] = mapped_column(
        PgEnum(ProfileRole, name="profile_role", values_callable=enum_values),
        default=ProfileRole.CUSTOMER,
        nullable=False,
    )
    caterer_id: Mapped[int | None] = mapped_column(ForeignKey("caterers.id", ondelete="SET NULL"))
    booking_reference: Mapped[str | None] = mapped_column(String(32))
    api_key_hash: Mapped[str | None] = mapped_column(String(64), unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    @property
    def author_name(self) -> str:
        return self.full_name or self.email

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role.value,
            "caterer_id": self.caterer_id,
            "booking_reference": self.booking_reference,
        }
