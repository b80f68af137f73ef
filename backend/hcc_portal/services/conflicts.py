from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, time
from typing import Any, Dict, Iterable, List, Mapping, Optional

from hcc_portal.models.booking import BookingStatus

logger = logging.getLogger(__name__)

FULL_DAY_START = time(0, 0)
FULL_DAY_END = time(23, 59)

PRIORITY_STATUSES = frozenset({BookingStatus.APPROVED, BookingStatus.CONFIRMED})
LOW_PRIORITY_STATUSES = frozenset({BookingStatus.PENDING})


@dataclass(frozen=True)
class ReservationSlot:
    booking_id: int
    space_id: str
    service_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    booking_status: BookingStatus = BookingStatus.PENDING


@dataclass(frozen=True)
class SpaceConflict:
    booking_id: int
    space_id: str
    service_date: date
    conflicts_with: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "booking_id": self.booking_id,
            "space_id": self.space_id,
            "service_date": self.service_date.isoformat(),
            "conflicts_with": self.conflicts_with,
        }


@dataclass(frozen=True)
class StayWindow:
    booking_id: int
    room_id: str
    status: BookingStatus
    arrival_date: date
    departure_date: date
    reference: Optional[str] = None
    customer_name: Optional[str] = None
    contact_name: Optional[str] = None

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.booking_id,
            "reference": self.reference,
            "status": self.status.value,
            "customer_name": self.customer_name,
            "contact_name": self.contact_name,
            "arrival_date": self.arrival_date.isoformat(),
            "departure_date": self.departure_date.isoformat(),
        }


@dataclass(frozen=True)
class RoomConflict:
    room_id: str
    conflicts_with: int
    conflicting_booking: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "room_id": self.room_id,
            "conflicts_with": self.conflicts_with,
            "conflicting_booking": self.conflicting_booking,
        }


def _window(start: Optional[time], end: Optional[time]) -> tuple[time, time]:
    return start or FULL_DAY_START, end or FULL_DAY_END


def times_overlap(
    a_start: Optional[time],
    a_end: Optional[time],
    b_start: Optional[time],
    b_end: Optional[time],
) -> bool:
    """Half-open ``[start, end)`` overlap; a missing bound means the full day."""

    my_start, my_end = _window(a_start, a_end)
    other_start, other_end = _window(b_start, b_end)
    return my_start < other_end and other_start < my_end


def suppresses_conflict(subject_status: BookingStatus, other_status: BookingStatus) -> bool:
    """An approved or confirmed booking does not see conflicts with pending ones."""

    return subject_status in PRIORITY_STATUSES and other_status in LOW_PRIORITY_STATUSES


def detect_space_conflicts(
    subject_booking_id: int,
    subject_status: BookingStatus,
    mine: Iterable[ReservationSlot],
    others: Iterable[ReservationSlot],
) -> List[SpaceConflict]:
    candidates = [
        slot
        for slot in others
        if slot.booking_id != subject_booking_id and slot.booking_status != BookingStatus.CANCELLED
    ]
    conflicts: List[SpaceConflict] = []
    for reservation in mine:
        for other in candidates:
            if other.space_id != reservation.space_id or other.service_date != reservation.service_date:
                continue
            if not times_overlap(reservation.start_time, reservation.end_time, other.start_time, other.end_time):
                continue
            if suppresses_conflict(subject_status, other.booking_status):
                logger.debug(
                    "space_conflict_suppressed",
                    extra={"booking_id": subject_booking_id, "other_booking_id": other.booking_id},
                )
                continue
            conflicts.append(
                SpaceConflict(
                    booking_id=subject_booking_id,
                    space_id=reservation.space_id,
                    service_date=reservation.service_date,
                    conflicts_with=other.booking_id,
                )
            )
    return conflicts


def detect_room_conflicts(
    subject_arrival: date,
    subject_departure: date,
    others: Iterable[StayWindow],
) -> List[RoomConflict]:
    """Whole-stay overlap against other bookings' room assignments.

    Assignments cover a booking's entire stay, so the check compares date ranges
    and never individual nights.
    """

    conflicts: List[RoomConflict] = []
    for stay in others:
        if stay.status == BookingStatus.CANCELLED:
            continue
        if stay.arrival_date < subject_departure and stay.departure_date > subject_arrival:
            conflicts.append(
                RoomConflict(
                    room_id=stay.room_id,
                    conflicts_with=stay.booking_id,
                    conflicting_booking=stay.summary(),
                )
            )
    return conflicts


def conflicting_booking_ids(conflicts: Iterable[SpaceConflict | RoomConflict]) -> List[int]:
    seen: Dict[int, None] = {}
    for conflict in conflicts:
        seen.setdefault(conflict.conflicts_with, None)
    return list(seen)


def conflict_label(
    conflict: SpaceConflict,
    space_names: Mapping[str, str],
    references: Mapping[int, Optional[str]],
) -> str:
    space = space_names.get(conflict.space_id, conflict.space_id)
    other = references.get(conflict.conflicts_with) or str(conflict.conflicts_with)
    return f"{space} · {conflict.service_date.isoformat()} · conflict with {other}"
