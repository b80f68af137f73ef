from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import ADMIN_KEY, auth
from hcc_portal.models import Booking, BookingStatus, Enquiry, EnquiryStatus


@pytest.fixture
def enquiry(db, profiles) -> Enquiry:
    record = Enquiry(
        reference_number="ENQ-2024-0001",
        customer_name="Mary Byrne",
        customer_email="mary@example.com",
        organization="Loreto Old Girls",
        event_type="Retreat",
        estimated_guests=24,
        message="We would like to hold a weekend retreat in spring.",
    )
    db.add(record)
    db.commit()
    return record


def _url(enquiry: Enquiry, suffix: str = "") -> str:
    return f"/api/admin/enquiries/{enquiry.id}{suffix}"


def test_list_and_filter_enquiries(client, enquiry) -> None:
    listed = client.get("/api/admin/enquiries", headers=auth(ADMIN_KEY)).json()["enquiries"]
    assert [item["reference_number"] for item in listed] == ["ENQ-2024-0001"]

    filtered = client.get("/api/admin/enquiries?status=lost", headers=auth(ADMIN_KEY)).json()["enquiries"]
    assert filtered == []


def test_status_change_writes_note(client, enquiry) -> None:
    response = client.patch(_url(enquiry, "/status"), json={"status": "in_discussion"}, headers=auth(ADMIN_KEY))

    assert response.json()["enquiry"]["status"] == "in_discussion"
    notes = client.get(_url(enquiry), headers=auth(ADMIN_KEY)).json()["notes"]
    assert notes[0]["note_type"] == "status_change"
    assert notes[0]["metadata"] == {"from_status": "new", "to_status": "in_discussion"}
    assert notes[0]["author_name"] == "Ada Admin"


def test_add_note(client, enquiry) -> None:
    response = client.post(
        _url(enquiry, "/notes"),
        json={"content": "Called Mary about dates", "note_type": "phone_call"},
        headers=auth(ADMIN_KEY),
    )

    assert response.status_code == 201
    assert response.json()["note"]["note_type"] == "phone_call"


def test_quotes_are_versioned(client, enquiry) -> None:
    first = client.post(_url(enquiry, "/quotes"), json={"amount": "1500.00"}, headers=auth(ADMIN_KEY))
    second = client.post(
        _url(enquiry, "/quotes"),
        json={"amount": "1350.00", "reason_for_change": "Fewer guests"},
        headers=auth(ADMIN_KEY),
    )

    assert first.status_code == 201
    assert first.json()["quote"]["version_number"] == 1
    assert second.json()["quote"]["version_number"] == 2

    detail = client.get(_url(enquiry), headers=auth(ADMIN_KEY)).json()
    assert detail["enquiry"]["status"] == "quoted"
    assert Decimal(detail["enquiry"]["quoted_amount"]) == Decimal("1350")
    assert [quote["version_number"] for quote in detail["quotes"]] == [2, 1]
    note_types = [note["note_type"] for note in detail["notes"]]
    assert note_types.count("quote_created") == 2
    assert note_types.count("status_change") == 1


def test_quote_amount_must_be_positive(client, enquiry) -> None:
    response = client.post(_url(enquiry, "/quotes"), json={"amount": "0"}, headers=auth(ADMIN_KEY))

    assert response.status_code == 422


def test_accept_quote_is_exclusive(client, enquiry) -> None:
    first = client.post(_url(enquiry, "/quotes"), json={"amount": "1500"}, headers=auth(ADMIN_KEY)).json()["quote"]
    second = client.post(_url(enquiry, "/quotes"), json={"amount": "1400"}, headers=auth(ADMIN_KEY)).json()["quote"]

    client.post(_url(enquiry, f"/quotes/{second['id']}/accept"), headers=auth(ADMIN_KEY))
    client.post(_url(enquiry, f"/quotes/{first['id']}/accept"), headers=auth(ADMIN_KEY))

    quotes = {quote["id"]: quote for quote in client.get(_url(enquiry), headers=auth(ADMIN_KEY)).json()["quotes"]}
    assert quotes[first["id"]]["is_accepted"] is True
    assert quotes[second["id"]]["is_accepted"] is False


def test_accept_unknown_quote(client, enquiry) -> None:
    response = client.post(_url(enquiry, "/quotes/999/accept"), headers=auth(ADMIN_KEY))

    assert response.status_code == 404


def test_mark_lost(client, enquiry) -> None:
    response = client.post(_url(enquiry, "/lost"), json={"reason": "Booked elsewhere"}, headers=auth(ADMIN_KEY))

    payload = response.json()["enquiry"]
    assert payload["status"] == "lost"
    assert payload["lost_reason"] == "Booked elsewhere"


def test_convert_to_booking(client, db, enquiry, emails) -> None:
    response = client.post(_url(enquiry, "/convert"), json={"discount_percentage": "10"}, headers=auth(ADMIN_KEY))

    assert response.status_code == 201
    booking = db.get(Booking, response.json()["booking_id"])
    assert booking.status == BookingStatus.AWAITING_DETAILS
    assert booking.customer_email == "mary@example.com"
    assert booking.organization == "Loreto Old Girls"
    assert booking.enquiry_id == enquiry.id
    assert emails.sent[-1].to == ["mary@example.com"]

    db.expire_all()
    stored = db.get(Enquiry, enquiry.id)
    assert stored.status == EnquiryStatus.CONVERTED_TO_BOOKING
    assert stored.converted_to_booking_id == booking.id

    again = client.post(_url(enquiry, "/convert"), json={}, headers=auth(ADMIN_KEY))
    assert again.status_code == 409

    lost = client.post(_url(enquiry, "/lost"), json={"reason": "Too late"}, headers=auth(ADMIN_KEY))
    assert lost.status_code == 409


def test_missing_enquiry(client, profiles) -> None:
    assert client.get("/api/admin/enquiries/999", headers=auth(ADMIN_KEY)).status_code == 404
