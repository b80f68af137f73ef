from __future__ import annotations

import asyncio
import json

from conftest import STAFF_KEY, auth
from hcc_portal.routes.events import channel_stream
from hcc_portal.stores.event_bus import EventBus


def test_publish_reaches_channel_subscribers() -> None:
    bus = EventBus()

    async def run():
        bookings = bus.subscribe("bookings")
        rooms = bus.subscribe("rooms")
        await bus.publish("bookings", {"type": "booking.approved", "booking_id": 7})
        return bookings.get_nowait(), rooms.empty()

    event, rooms_empty = asyncio.run(run())

    assert event == {"channel": "bookings", "type": "booking.approved", "booking_id": 7}
    assert rooms_empty


def test_unsubscribe_drops_empty_channel() -> None:
    bus = EventBus()

    async def run():
        queue = bus.subscribe("catering")
        assert bus.subscriber_count("catering") == 1
        bus.unsubscribe("catering", queue)
        await bus.publish("catering", {"type": "meal_job.created"})

    asyncio.run(run())

    assert bus.subscriber_count("catering") == 0


def test_stream_yields_published_events() -> None:
    bus = EventBus()

    async def run():
        stream = bus.stream("enquiries")
        pending = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0)
        await bus.publish("enquiries", {"type": "enquiry.submitted", "enquiry_id": 3})
        event = await asyncio.wait_for(pending, timeout=1)
        await stream.aclose()
        return event

    event = asyncio.run(run())

    assert event["enquiry_id"] == 3
    assert bus.subscriber_count("enquiries") == 0


def test_event_stream_requires_known_channel(client, profiles) -> None:
    assert client.get("/api/events/bookings").status_code == 401
    assert client.get("/api/events/payments", headers=auth(STAFF_KEY)).status_code == 404


def test_channel_stream_announces_then_relays() -> None:
    bus = EventBus()

    async def run():
        stream = channel_stream("rooms", bus)
        status = json.loads(await stream.__anext__())
        pending = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0)
        await bus.publish("rooms", {"type": "room.cleaned", "room_id": "room-101"})
        event = json.loads(await asyncio.wait_for(pending, timeout=1))
        await stream.aclose()
        return status, event

    status, event = asyncio.run(run())

    assert status == {"type": "status", "status": "listening", "channel": "rooms"}
    assert event == {"channel": "rooms", "type": "room.cleaned", "room_id": "room-101"}
    assert bus.subscriber_count("rooms") == 0
