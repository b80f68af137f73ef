from __future__ import annotations

from datetime import date, time

from conftest import ADMIN_KEY, STAFF_KEY, auth, make_booking
from hcc_portal.models import Booking, BookingStatus, DepositStatus, Profile, ProfileRole, RoomAssignment, SpaceReservation

ARRIVAL = date(2024, 6, 10)
DEPARTURE = date(2024, 6, 12)


def test_admin_routes_require_api_key(client, profiles) -> None:
    assert client.get("/api/admin/bookings").status_code == 401
    assert client.get("/api/admin/bookings", headers=auth("wrong")).status_code == 401
    assert client.get("/api/admin/bookings", headers=auth(STAFF_KEY)).status_code == 403


def test_list_bookings_with_conflict_labels(client, db, profiles, centre) -> None:
    first = make_booking(db, ARRIVAL, DEPARTURE, reference="BKG-2024-0001")
    second = make_booking(db, ARRIVAL, DEPARTURE, reference="BKG-2024-0002")
    db.add_all(
        [
            SpaceReservation(booking_id=first.id, space_id="chapel", service_date=ARRIVAL, start_time=time(9), end_time=time(12)),
            SpaceReservation(booking_id=second.id, space_id="chapel", service_date=ARRIVAL, start_time=time(11), end_time=time(13)),
        ]
    )
    db.commit()

    response = client.get("/api/admin/bookings", headers=auth(ADMIN_KEY))

    assert response.status_code == 200
    rows = {row["id"]: row for row in response.json()["bookings"]}
    assert rows[first.id]["spaces"] == ["Chapel"]
    assert rows[first.id]["conflicts"] == ["Chapel · 2024-06-10 · conflict with BKG-2024-0002"]
    assert rows[second.id]["conflicts"] == ["Chapel · 2024-06-10 · conflict with BKG-2024-0001"]


def test_approved_booking_list_hides_pending_conflicts(client, db, profiles, centre) -> None:
    approved = make_booking(db, ARRIVAL, DEPARTURE, status=BookingStatus.APPROVED, reference="BKG-2024-0003")
    pending = make_booking(db, ARRIVAL, DEPARTURE, reference="BKG-2024-0004")
    for booking in (approved, pending):
        db.add(SpaceReservation(booking_id=booking.id, space_id="chapel", service_date=ARRIVAL))
    db.commit()

    rows = {row["id"]: row for row in client.get("/api/admin/bookings", headers=auth(ADMIN_KEY)).json()["bookings"]}

    assert rows[approved.id]["conflicts"] == []
    assert len(rows[pending.id]["conflicts"]) == 1


def test_booking_conflicts_endpoint_reports_rooms(client, db, profiles, centre) -> None:
    mine = make_booking(db, ARRIVAL, DEPARTURE)
    other = make_booking(db, date(2024, 6, 11), date(2024, 6, 13), status=BookingStatus.CONFIRMED, reference="BKG-2024-0009")
    db.add(RoomAssignment(booking_id=other.id, room_id="room-101", guest_names=["Ann"]))
    db.commit()

    response = client.get(f"/api/admin/bookings/{mine.id}/conflicts", headers=auth(ADMIN_KEY))

    payload = response.json()
    assert payload["space_conflicts"] == []
    assert payload["room_conflicts"][0]["room_id"] == "room-101"
    assert payload["conflicting_bookings"] == [payload["room_conflicts"][0]["conflicting_booking"]]
    assert payload["conflicting_bookings"][0]["reference"] == "BKG-2024-0009"


def test_approve_booking_issues_portal_token(client, db, profiles, emails) -> None:
    booking = make_booking(
        db,
        ARRIVAL,
        DEPARTURE,
        reference="BKG-2024-0010",
        customer_name="Joan Doyle",
        customer_email=" Joan@Example.com ",
    )

    response = client.post(f"/api/bookings/{booking.id}/approve", headers=auth(ADMIN_KEY))

    assert response.status_code == 200
    payload = response.json()
    assert payload["booking"]["status"] == "approved"
    assert payload["email_sent"] is True
    assert emails.sent[-1].subject

    token = payload["portal_url"].split("token=")[1]
    portal = client.get("/api/portal/bookings/BKG-2024-0010", headers={"X-Portal-Token": token})
    assert portal.status_code == 200

    customer = db.query(Profile).filter_by(email="joan@example.com").one()
    assert customer.role == ProfileRole.CUSTOMER
    assert customer.full_name == "Joan Doyle"
    assert customer.booking_reference == "BKG-2024-0010"


def test_approve_requires_customer_email(client, db, profiles) -> None:
    booking = make_booking(db, ARRIVAL, DEPARTURE, reference="BKG-2024-0011")

    response = client.post(f"/api/admin/bookings/{booking.id}/approve", headers=auth(ADMIN_KEY))

    assert response.status_code == 400
    assert response.json()["detail"] == "A valid customer email address is required for approval."


def test_approve_missing_booking(client, profiles) -> None:
    response = client.post("/api/bookings/999/approve", headers=auth(ADMIN_KEY))

    assert response.status_code == 404
    assert response.json()["detail"] == "Booking not found."


def test_record_deposit_confirms_booking(client, db, profiles) -> None:
    booking = make_booking(db, ARRIVAL, DEPARTURE, status=BookingStatus.APPROVED)

    response = client.post(
        f"/api/admin/bookings/{booking.id}/deposit",
        json={"amount": "500.00", "reference": "EFT-1234"},
        headers=auth(ADMIN_KEY),
    )

    assert response.status_code == 200
    db.expire_all()
    stored = db.get(Booking, booking.id)
    assert stored.status == BookingStatus.CONFIRMED
    assert stored.deposit_status == DepositStatus.PAID
    assert stored.deposit_reference == "EFT-1234"
    assert stored.deposit_received_at is not None


def test_deposit_on_cancelled_booking_conflicts(client, db, profiles) -> None:
    booking = make_booking(db, ARRIVAL, DEPARTURE, status=BookingStatus.CANCELLED)

    response = client.post(f"/api/admin/bookings/{booking.id}/deposit", json={}, headers=auth(ADMIN_KEY))

    assert response.status_code == 409


def test_cancel_booking_records_reason(client, db, profiles) -> None:
    booking = make_booking(db, ARRIVAL, DEPARTURE)

    response = client.patch(
        f"/api/admin/bookings/{booking.id}/status",
        json={"status": "cancelled", "cancel_reason": "Group postponed"},
        headers=auth(ADMIN_KEY),
    )

    assert response.json()["booking"]["status"] == "cancelled"
    assert response.json()["booking"]["cancel_reason"] == "Group postponed"


def test_space_reservation_lifecycle(client, db, profiles, centre) -> None:
    booking = make_booking(db, ARRIVAL, DEPARTURE)
    url = f"/api/admin/bookings/{booking.id}/spaces"

    created = client.post(
        url,
        json={"space_id": "chapel", "service_date": "2024-06-11", "start_time": "09:00", "end_time": "11:00"},
        headers=auth(ADMIN_KEY),
    )
    assert created.status_code == 201
    reservation = created.json()["space_reservation"]
    assert reservation["start_time"] == "09:00"

    moved = client.patch(
        f"/api/admin/space-reservations/{reservation['id']}",
        json={"space_id": "dining-hall", "start_time": "13:00", "end_time": "15:00"},
        headers=auth(ADMIN_KEY),
    )
    assert moved.json()["space_reservation"]["space_id"] == "dining-hall"

    detail = client.get(f"/api/admin/bookings/{booking.id}", headers=auth(ADMIN_KEY)).json()
    assert [item["space_id"] for item in detail["space_reservations"]] == ["dining-hall"]

    removed = client.delete(f"/api/admin/space-reservations/{reservation['id']}", headers=auth(ADMIN_KEY))
    assert removed.status_code == 204
    assert client.get(url, headers=auth(ADMIN_KEY)).json()["space_reservations"] == []


def test_space_reservation_outside_stay_is_rejected(client, db, profiles, centre) -> None:
    booking = make_booking(db, ARRIVAL, DEPARTURE)

    response = client.post(
        f"/api/admin/bookings/{booking.id}/spaces",
        json={"space_id": "chapel", "service_date": "2024-06-20"},
        headers=auth(ADMIN_KEY),
    )

    assert response.status_code == 400


def test_space_reservation_rejects_inverted_times(client, db, profiles, centre) -> None:
    booking = make_booking(db, ARRIVAL, DEPARTURE)

    response = client.post(
        f"/api/admin/bookings/{booking.id}/spaces",
        json={"space_id": "chapel", "service_date": "2024-06-10", "start_time": "12:00", "end_time": "09:00"},
        headers=auth(ADMIN_KEY),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "End time must be after start time."


def test_room_assignment_lifecycle(client, db, profiles, centre) -> None:
    booking = make_booking(db, ARRIVAL, DEPARTURE)
    url = f"/api/admin/bookings/{booking.id}/rooms"

    created = client.post(
        url,
        json={"room_id": "room-103", "guest_names": ["Ann", " ", "Bea"], "extra_bed_selected": True},
        headers=auth(ADMIN_KEY),
    )
    assert created.status_code == 201
    assignment = created.json()["room_assignment"]
    assert assignment["guest_names"] == ["Ann", "Bea"]

    duplicate = client.post(url, json={"room_id": "room-103"}, headers=auth(ADMIN_KEY))
    assert duplicate.status_code == 409

    updated = client.patch(
        f"/api/admin/room-assignments/{assignment['id']}",
        json={"guest_names": ["Ann"], "ensuite_selected": True},
        headers=auth(ADMIN_KEY),
    )
    assert updated.json()["room_assignment"]["guest_names"] == ["Ann"]
    assert updated.json()["room_assignment"]["ensuite_selected"] is True

    assert client.delete(f"/api/admin/room-assignments/{assignment['id']}", headers=auth(ADMIN_KEY)).status_code == 204
    assert client.get(url, headers=auth(ADMIN_KEY)).json()["room_assignments"] == []


def test_extra_bed_needs_room_support(client, db, profiles, centre) -> None:
    booking = make_booking(db, ARRIVAL, DEPARTURE)

    response = client.post(
        f"/api/admin/bookings/{booking.id}/rooms",
        json={"room_id": "room-101", "extra_bed_selected": True},
        headers=auth(ADMIN_KEY),
    )

    assert response.status_code == 400
