from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from hcc_portal.models.booking import BookingStatus
from hcc_portal.models.venue import RoomAction

logger = logging.getLogger(__name__)


class RoomStatus(str, Enum):
    READY = "ready"
    NEEDS_SETUP = "needs_setup"
    SETUP_COMPLETE = "setup_complete"
    IN_USE = "in_use"
    CLEANING_REQUIRED = "cleaning_required"


@dataclass(frozen=True)
class RoomSnapshot:
    id: str
    name: str
    room_number: Optional[str] = None
    level: Optional[str] = None
    wing: Optional[str] = None
    capacity: Optional[int] = None
    room_type: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class StayAssignment:
    room_id: str
    booking_id: int
    status: BookingStatus
    arrival_date: date
    departure_date: date
    guest_names: Sequence[str] = ()
    extra_bed_selected: bool = False
    ensuite_selected: bool = False
    private_study_selected: bool = False
    booking_name: str = "Guest"
    accommodation_requests: Dict[str, Any] = field(default_factory=dict, hash=False)

    @property
    def byo_linen(self) -> bool:
        return (self.accommodation_requests or {}).get("byo_linen") is True

    @property
    def named_guests(self) -> List[str]:
        return [name for name in self.guest_names if name and name.strip()]


@dataclass(frozen=True)
class StatusLogEntry:
    room_id: str
    action_type: RoomAction


@dataclass
class RoomStatusView:
    room: RoomSnapshot
    status: RoomStatus = RoomStatus.READY
    occupant_count: int = 0
    guest_names: List[str] = field(default_factory=list)
    byo_linen: bool = False
    extra_bed_selected: bool = False
    ensuite_selected: bool = False
    private_study_selected: bool = False
    related_booking_id: Optional[int] = None
    related_booking_name: Optional[str] = None

    def capture(self, assignment: StayAssignment) -> None:
        self.guest_names = list(assignment.guest_names)
        self.byo_linen = self.byo_linen or assignment.byo_linen
        self.extra_bed_selected = assignment.extra_bed_selected
        self.ensuite_selected = assignment.ensuite_selected
        self.private_study_selected = assignment.private_study_selected
        self.related_booking_id = assignment.booking_id
        self.related_booking_name = assignment.booking_name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.room.id,
            "name": self.room.name,
            "room_number": self.room.room_number,
            "level": self.room.level,
            "wing": self.room.wing,
            "room_type": self.room.room_type,
            "status": self.status.value,
            "occupant_count": self.occupant_count,
            "guest_names": self.guest_names,
            "byo_linen": self.byo_linen,
            "extra_bed_selected": self.extra_bed_selected,
            "ensuite_selected": self.ensuite_selected,
            "private_study_selected": self.private_study_selected,
            "related_booking_id": self.related_booking_id,
            "related_booking_name": self.related_booking_name,
        }


def _derive_one(
    room: RoomSnapshot,
    selected_date: date,
    next_day: date,
    assignments: List[StayAssignment],
    cleaned: bool,
    setup_complete: bool,
) -> RoomStatusView:
    view = RoomStatusView(room=room)
    for assignment in assignments:
        logger.debug(
            "room_status_scan",
            extra={
                "room_id": room.id,
                "arrival": assignment.arrival_date.isoformat(),
                "departure": assignment.departure_date.isoformat(),
                "date": selected_date.isoformat(),
            },
        )

        if assignment.arrival_date <= selected_date < assignment.departure_date:
            view.status = RoomStatus.IN_USE
            view.capture(assignment)
            view.occupant_count = len(assignment.named_guests) or 1
            break

        if assignment.departure_date == selected_date and not cleaned:
            view.status = RoomStatus.CLEANING_REQUIRED
            view.byo_linen = view.byo_linen or assignment.byo_linen
            view.related_booking_id = assignment.booking_id
            view.related_booking_name = assignment.booking_name

        if assignment.arrival_date == next_day:
            view.capture(assignment)
            view.occupant_count = len(assignment.named_guests) or (room.capacity or 1)
            if view.status == RoomStatus.CLEANING_REQUIRED:
                # cleaning has to happen before the next group can be set up
                continue
            view.status = RoomStatus.SETUP_COMPLETE if setup_complete else RoomStatus.NEEDS_SETUP

    logger.debug("room_status", extra={"room_id": room.id, "status": view.status.value})
    return view


def derive_room_statuses(
    selected_date: date,
    rooms: Iterable[RoomSnapshot],
    assignments: Iterable[StayAssignment],
    logs: Iterable[StatusLogEntry],
) -> List[RoomStatusView]:
    """Classify every room for ``selected_date``.

    ``in_use`` wins outright. A same-day departure without a ``cleaned`` log gives
    ``cleaning_required``, which a next-day arrival never overrides. Otherwise a
    next-day arrival gives ``setup_complete`` or ``needs_setup`` depending on the
    operator log. Rooms with no activity are ``ready``.
    """

    next_day = selected_date + timedelta(days=1)
    log_list = list(logs)
    cleaned_rooms = {log.room_id for log in log_list if log.action_type == RoomAction.CLEANED}
    setup_rooms = {log.room_id for log in log_list if log.action_type == RoomAction.SETUP_COMPLETE}

    by_room: Dict[str, List[StayAssignment]] = {}
    for assignment in assignments:
        if assignment.status == BookingStatus.CANCELLED:
            continue
        by_room.setdefault(assignment.room_id, []).append(assignment)

    return [
        _derive_one(
            room,
            selected_date,
            next_day,
            by_room.get(room.id, []),
            cleaned=room.id in cleaned_rooms,
            setup_complete=room.id in setup_rooms,
        )
        for room in rooms
    ]
