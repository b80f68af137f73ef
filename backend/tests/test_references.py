from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from conftest import make_booking
from hcc_portal.models import Booking, BookingStatus
from hcc_portal.services import references
from hcc_portal.services.errors import ServiceError

YEAR = datetime.now(timezone.utc).year
TAKEN = f"BKG-{YEAR}-0001"


@pytest.fixture
def factory(db_url):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_url}", poolclass=NullPool)
    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    asyncio.run(engine.dispose())


def _pending_booking() -> Booking:
    return Booking(arrival_date=date(2024, 6, 10), departure_date=date(2024, 6, 12), nights=2, status=BookingStatus.PENDING)


def _stale_reads(monkeypatch, stale_count):
    """Answer the first ``stale_count`` lookups with a number another writer already committed."""

    calls = []
    real = references.next_reference

    async def lookup(session, column, prefix, year=None):
        calls.append(prefix)
        if len(calls) <= stale_count:
            return TAKEN
        return await real(session, column, prefix, year)

    monkeypatch.setattr(references, "next_reference", lookup)
    return calls


def test_next_reference_continues_the_year(factory, db) -> None:
    make_booking(db, date(2024, 6, 10), date(2024, 6, 12), reference=f"BKG-{YEAR}-0041")
    make_booking(db, date(2024, 6, 10), date(2024, 6, 12), reference=f"BKG-{YEAR - 1}-0099")

    async def run():
        async with factory() as session:
            return await references.next_reference(session, Booking.reference, "BKG")

    assert asyncio.run(run()) == f"BKG-{YEAR}-0042"


def test_collision_retries_with_the_next_number(factory, db, monkeypatch) -> None:
    make_booking(db, date(2024, 6, 10), date(2024, 6, 12), reference=TAKEN)
    calls = _stale_reads(monkeypatch, stale_count=1)

    async def run():
        async with factory() as session:
            booking = _pending_booking()
            reference = await references.commit_with_reference(session, booking, Booking.reference, "BKG")
            return reference, booking.id

    reference, booking_id = asyncio.run(run())

    assert reference == f"BKG-{YEAR}-0002"
    assert len(calls) == 2
    assert db.get(Booking, booking_id).reference == reference


def test_gives_up_after_repeated_collisions(factory, db, monkeypatch) -> None:
    make_booking(db, date(2024, 6, 10), date(2024, 6, 12), reference=TAKEN)
    calls = _stale_reads(monkeypatch, stale_count=references.REFERENCE_ATTEMPTS)

    async def run():
        async with factory() as session:
            await references.commit_with_reference(session, _pending_booking(), Booking.reference, "BKG")

    with pytest.raises(ServiceError) as excinfo:
        asyncio.run(run())

    assert excinfo.value.status_code == 503
    assert len(calls) == references.REFERENCE_ATTEMPTS
    assert db.query(Booking).count() == 1
