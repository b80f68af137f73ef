from __future__ import annotations

from datetime import date

from conftest import CATERER_KEY, STAFF_KEY, auth, make_booking
from hcc_portal.models import BookingStatus, RoomAssignment, RoomStatusLog


def _board(client, day="2024-06-10"):
    response = client.get(f"/api/staff/rooms/status?date={day}", headers=auth(STAFF_KEY))
    assert response.status_code == 200
    return {room["id"]: room for room in response.json()["rooms"]}


def test_board_requires_staff(client, profiles, centre) -> None:
    assert client.get("/api/staff/rooms/status").status_code == 401
    assert client.get("/api/staff/rooms/status", headers=auth(CATERER_KEY)).status_code == 403


def test_board_derives_statuses(client, db, profiles, centre) -> None:
    leaving = make_booking(
        db,
        date(2024, 6, 8),
        date(2024, 6, 10),
        status=BookingStatus.CONFIRMED,
        customer_name="Parish Youth",
        accommodation_requests={"byo_linen": True},
    )
    staying = make_booking(db, date(2024, 6, 9), date(2024, 6, 12), status=BookingStatus.CONFIRMED, customer_name="Choir")
    db.add_all(
        [
            RoomAssignment(booking_id=leaving.id, room_id="room-101"),
            RoomAssignment(booking_id=staying.id, room_id="room-103", guest_names=["Ann", "Bea"]),
        ]
    )
    db.commit()

    response = client.get("/api/staff/rooms/status?date=2024-06-10", headers=auth(STAFF_KEY)).json()

    assert response["date"] == "2024-06-10"
    assert response["summary"] == {"cleaning_required": 1, "in_use": 1}
    rooms = {room["id"]: room for room in response["rooms"]}
    assert rooms["room-101"]["byo_linen"] is True
    assert rooms["room-101"]["related_booking_name"] == "Parish Youth"
    assert rooms["room-103"]["occupant_count"] == 2
    assert rooms["room-103"]["room_type"]["id"] == "twin"


def test_next_day_arrival_uses_room_type_capacity(client, db, profiles, centre) -> None:
    arriving = make_booking(db, date(2024, 6, 11), date(2024, 6, 13), status=BookingStatus.APPROVED)
    db.add(RoomAssignment(booking_id=arriving.id, room_id="room-103"))
    db.commit()

    room = _board(client)["room-103"]

    assert room["status"] == "needs_setup"
    assert room["occupant_count"] == 2


def test_cancelled_booking_leaves_room_ready(client, db, profiles, centre) -> None:
    cancelled = make_booking(db, date(2024, 6, 9), date(2024, 6, 12), status=BookingStatus.CANCELLED)
    db.add(RoomAssignment(booking_id=cancelled.id, room_id="room-101"))
    db.commit()

    assert _board(client)["room-101"]["status"] == "ready"


def test_mark_cleaned_is_idempotent(client, db, profiles, centre) -> None:
    leaving = make_booking(db, date(2024, 6, 8), date(2024, 6, 10), status=BookingStatus.CONFIRMED)
    db.add(RoomAssignment(booking_id=leaving.id, room_id="room-101"))
    db.commit()
    assert _board(client)["room-101"]["status"] == "cleaning_required"

    for _ in range(2):
        response = client.post(
            "/api/staff/rooms/room-101/cleaned",
            json={"date": "2024-06-10", "booking_id": leaving.id},
            headers=auth(STAFF_KEY),
        )
        assert response.status_code == 200

    log = response.json()["log"]
    assert log["action_type"] == "cleaned"
    assert log["performed_by"] == profiles["staff"].id
    assert db.query(RoomStatusLog).count() == 1
    assert _board(client)["room-101"]["status"] == "ready"


def test_setup_complete_then_undo(client, db, profiles, centre) -> None:
    arriving = make_booking(db, date(2024, 6, 11), date(2024, 6, 13), status=BookingStatus.CONFIRMED)
    db.add(RoomAssignment(booking_id=arriving.id, room_id="room-103"))
    db.commit()

    client.post("/api/staff/rooms/room-103/setup-complete", json={"date": "2024-06-10"}, headers=auth(STAFF_KEY))
    assert _board(client)["room-103"]["status"] == "setup_complete"

    undone = client.delete("/api/staff/rooms/room-103/actions/setup_complete?date=2024-06-10", headers=auth(STAFF_KEY))
    assert undone.status_code == 200
    assert _board(client)["room-103"]["status"] == "needs_setup"

    again = client.delete("/api/staff/rooms/room-103/actions/setup_complete?date=2024-06-10", headers=auth(STAFF_KEY))
    assert again.status_code == 404


def test_unknown_room(client, profiles, centre) -> None:
    response = client.post("/api/staff/rooms/room-999/cleaned", json={}, headers=auth(STAFF_KEY))

    assert response.status_code == 404
