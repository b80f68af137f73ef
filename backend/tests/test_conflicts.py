from __future__ import annotations

from datetime import date, time

from hcc_portal.models import BookingStatus
from hcc_portal.services.conflicts import (
    ReservationSlot,
    SpaceConflict,
    StayWindow,
    conflict_label,
    conflicting_booking_ids,
    detect_room_conflicts,
    detect_space_conflicts,
    times_overlap,
)

DAY = date(2024, 6, 10)


def _slot(booking_id, start=None, end=None, status=BookingStatus.PENDING, space="chapel", day=DAY):
    return ReservationSlot(
        booking_id=booking_id,
        space_id=space,
        service_date=day,
        start_time=start,
        end_time=end,
        booking_status=status,
    )


def test_back_to_back_slots_do_not_overlap() -> None:
    assert not times_overlap(time(9), time(10), time(10), time(11))
    assert times_overlap(time(9), time(11), time(10), time(12))


def test_missing_times_cover_the_whole_day() -> None:
    assert times_overlap(None, None, time(14), time(15))


def test_overlapping_space_is_reported() -> None:
    mine = [_slot(1, time(9), time(12))]
    others = [_slot(2, time(11), time(13))]

    conflicts = detect_space_conflicts(1, BookingStatus.PENDING, mine, others)

    assert conflicts == [SpaceConflict(booking_id=1, space_id="chapel", service_date=DAY, conflicts_with=2)]


def test_adjacent_space_use_is_not_a_conflict() -> None:
    mine = [_slot(1, time(9), time(10))]
    others = [_slot(2, time(10), time(11))]

    assert detect_space_conflicts(1, BookingStatus.PENDING, mine, others) == []


def test_approved_booking_ignores_pending_overlaps() -> None:
    mine = [_slot(1, time(9), time(12), status=BookingStatus.APPROVED)]
    others = [
        _slot(2, time(9), time(12), status=BookingStatus.PENDING),
        _slot(3, time(9), time(12), status=BookingStatus.CONFIRMED),
    ]

    conflicts = detect_space_conflicts(1, BookingStatus.APPROVED, mine, others)

    assert [conflict.conflicts_with for conflict in conflicts] == [3]


def test_confirmed_booking_ignores_pending_overlaps() -> None:
    mine = [_slot(1, time(9), time(12), status=BookingStatus.CONFIRMED)]
    others = [
        _slot(2, time(10), time(11), status=BookingStatus.PENDING),
        _slot(3, time(11), time(13), status=BookingStatus.APPROVED),
    ]

    conflicts = detect_space_conflicts(1, BookingStatus.CONFIRMED, mine, others)

    assert [conflict.conflicts_with for conflict in conflicts] == [3]


def test_chapel_sessions_meeting_at_the_hour_do_not_conflict() -> None:
    mine = [_slot(1, time(9), time(10), day=date(2024, 7, 1))]
    others = [_slot(2, time(10), time(11), status=BookingStatus.CONFIRMED, day=date(2024, 7, 1))]

    assert detect_space_conflicts(1, BookingStatus.PENDING, mine, others) == []


def test_pending_booking_still_sees_approved_overlaps() -> None:
    mine = [_slot(1, time(9), time(12))]
    others = [_slot(2, time(9), time(12), status=BookingStatus.APPROVED)]

    assert len(detect_space_conflicts(1, BookingStatus.PENDING, mine, others)) == 1


def test_same_booking_and_cancelled_are_ignored() -> None:
    mine = [_slot(1, time(9), time(12))]
    others = [
        _slot(1, time(9), time(12)),
        _slot(4, time(9), time(12), status=BookingStatus.CANCELLED),
        _slot(5, time(9), time(12), space="dining-hall"),
        _slot(6, time(9), time(12), day=date(2024, 6, 11)),
    ]

    assert detect_space_conflicts(1, BookingStatus.PENDING, mine, others) == []


def test_room_conflicts_compare_whole_stays() -> None:
    others = [
        StayWindow(7, "room-101", BookingStatus.CONFIRMED, date(2024, 6, 12), date(2024, 6, 14), reference="HCC-2024-0007"),
        StayWindow(8, "room-101", BookingStatus.CONFIRMED, date(2024, 6, 14), date(2024, 6, 16)),
        StayWindow(9, "room-103", BookingStatus.CANCELLED, date(2024, 6, 10), date(2024, 6, 13)),
    ]

    conflicts = detect_room_conflicts(date(2024, 6, 10), date(2024, 6, 14), others)

    assert [conflict.conflicts_with for conflict in conflicts] == [7]
    assert conflicts[0].conflicting_booking["reference"] == "HCC-2024-0007"
    assert conflicts[0].to_dict()["room_id"] == "room-101"


def test_conflicting_ids_are_unique_and_ordered() -> None:
    conflicts = [
        SpaceConflict(1, "chapel", DAY, 3),
        SpaceConflict(1, "dining-hall", DAY, 2),
        SpaceConflict(1, "chapel", date(2024, 6, 11), 3),
    ]

    assert conflicting_booking_ids(conflicts) == [3, 2]


def test_conflict_label_uses_names_and_references() -> None:
    conflict = SpaceConflict(1, "chapel", DAY, 2)

    assert conflict_label(conflict, {"chapel": "Chapel"}, {2: "HCC-2024-0002"}) == (
        "Chapel · 2024-06-10 · conflict with HCC-2024-0002"
    )
    assert conflict_label(conflict, {}, {}) == "chapel · 2024-06-10 · conflict with 2"
