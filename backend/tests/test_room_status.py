from __future__ import annotations

from datetime import date

from hcc_portal.models import BookingStatus, RoomAction
from hcc_portal.services.room_status import (
    RoomSnapshot,
    RoomStatus,
    StatusLogEntry,
    StayAssignment,
    derive_room_statuses,
)

ROOM = RoomSnapshot(id="room-103", name="St Columba", room_number="103", capacity=2)
SELECTED = date(2024, 6, 10)


def _stay(arrival, departure, booking_id=1, status=BookingStatus.CONFIRMED, **fields):
    return StayAssignment(
        room_id=ROOM.id,
        booking_id=booking_id,
        status=status,
        arrival_date=arrival,
        departure_date=departure,
        **fields,
    )


def _status(assignments, logs=()):
    (view,) = derive_room_statuses(SELECTED, [ROOM], assignments, logs)
    return view


def test_idle_room_is_ready() -> None:
    view = _status([])

    assert view.status == RoomStatus.READY
    assert view.occupant_count == 0


def test_departure_day_requires_cleaning() -> None:
    view = _status([_stay(date(2024, 6, 8), date(2024, 6, 10), accommodation_requests={"byo_linen": True})])

    assert view.status == RoomStatus.CLEANING_REQUIRED
    assert view.byo_linen is True
    assert view.related_booking_id == 1


def test_cleaned_log_clears_departure() -> None:
    view = _status(
        [_stay(date(2024, 6, 8), date(2024, 6, 10))],
        [StatusLogEntry(ROOM.id, RoomAction.CLEANED)],
    )

    assert view.status == RoomStatus.READY


def test_stay_covering_the_date_is_in_use() -> None:
    view = _status([_stay(date(2024, 6, 9), date(2024, 6, 11), guest_names=["Ann", " ", "Bea"], booking_name="Parish Retreat")])

    assert view.status == RoomStatus.IN_USE
    assert view.occupant_count == 2
    assert view.related_booking_name == "Parish Retreat"


def test_in_use_without_named_guests_counts_one() -> None:
    view = _status([_stay(date(2024, 6, 10), date(2024, 6, 12))])

    assert view.status == RoomStatus.IN_USE
    assert view.occupant_count == 1


def test_next_day_arrival_needs_setup() -> None:
    view = _status([_stay(date(2024, 6, 11), date(2024, 6, 13), extra_bed_selected=True)])

    assert view.status == RoomStatus.NEEDS_SETUP
    assert view.occupant_count == 2
    assert view.extra_bed_selected is True


def test_setup_complete_log_marks_arrival_ready() -> None:
    view = _status(
        [_stay(date(2024, 6, 11), date(2024, 6, 13))],
        [StatusLogEntry(ROOM.id, RoomAction.SETUP_COMPLETE)],
    )

    assert view.status == RoomStatus.SETUP_COMPLETE


def test_cleaning_takes_precedence_over_setup() -> None:
    view = _status(
        [
            _stay(date(2024, 6, 8), date(2024, 6, 10), booking_id=1),
            _stay(date(2024, 6, 11), date(2024, 6, 12), booking_id=2, guest_names=["Cy"]),
        ]
    )

    assert view.status == RoomStatus.CLEANING_REQUIRED
    assert view.related_booking_id == 2
    assert view.guest_names == ["Cy"]


def test_cancelled_assignments_are_skipped() -> None:
    view = _status([_stay(date(2024, 6, 9), date(2024, 6, 11), status=BookingStatus.CANCELLED)])

    assert view.status == RoomStatus.READY


def test_to_dict_reports_status_value() -> None:
    payload = _status([_stay(date(2024, 6, 9), date(2024, 6, 11))]).to_dict()

    assert payload["id"] == "room-103"
    assert payload["status"] == "in_use"


def test_turnover_keeps_departing_byo_linen() -> None:
    view = _status(
        [
            _stay(date(2024, 6, 8), date(2024, 6, 10), booking_id=1, accommodation_requests={"byo_linen": True}),
            _stay(date(2024, 6, 11), date(2024, 6, 12), booking_id=2),
        ]
    )

    assert view.status == RoomStatus.CLEANING_REQUIRED
    assert view.byo_linen is True
    assert view.related_booking_id == 2


def test_turnover_across_consecutive_days() -> None:
    stays = [
        _stay(date(2024, 6, 8), date(2024, 6, 10), booking_id=1),
        _stay(date(2024, 6, 11), date(2024, 6, 13), booking_id=2, guest_names=["Cy"]),
    ]

    (departure_day,) = derive_room_statuses(date(2024, 6, 10), [ROOM], stays, [])
    (arrival_day,) = derive_room_statuses(date(2024, 6, 11), [ROOM], stays, [])

    assert departure_day.status == RoomStatus.CLEANING_REQUIRED
    assert arrival_day.status == RoomStatus.IN_USE
    assert arrival_day.related_booking_id == 2
