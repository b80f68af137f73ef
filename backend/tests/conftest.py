from __future__ import annotations

import time
from collections.abc import AsyncIterator
from datetime import date
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from hcc_portal.db.base import Base
from hcc_portal.db.database import get_session
from hcc_portal.main import app
from hcc_portal.models import Booking, BookingStatus, Caterer, Profile, ProfileRole, Room, RoomType, Space
from hcc_portal.security.bot_detection import generate_time_token
from hcc_portal.security.rate_limit import RateLimiter, get_rate_limiter
from hcc_portal.security.tokens import hash_token
from hcc_portal.services.email_service import EmailMessage, EmailService, get_email_service
from hcc_portal.utils.config import Settings

ADMIN_KEY = "admin-test-key"
STAFF_KEY = "staff-test-key"
CATERER_KEY = "caterer-test-key"
OTHER_CATERER_KEY = "other-caterer-test-key"


class RecordingEmailService(EmailService):
    def __init__(self) -> None:
        self.settings = Settings(RESEND_API_KEY="")
        self.sent: List[EmailMessage] = []

    async def send_safely(self, message: EmailMessage) -> bool:  # type: ignore[override]
        self.sent.append(message)
        return True


@pytest.fixture
def db_url(tmp_path) -> str:
    path = tmp_path / "hcc.sqlite3"
    engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(engine)
    engine.dispose()
    return str(path)


@pytest.fixture
def db(db_url):
    engine = create_engine(f"sqlite:///{db_url}")
    with Session(engine, expire_on_commit=False) as session:
        yield session
    engine.dispose()


@pytest.fixture
def emails() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture
def client(db_url, emails):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_url}", poolclass=NullPool)
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    async def override_session() -> AsyncIterator[AsyncSession]:
        async with factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_rate_limiter] = lambda: RateLimiter(enabled=False)
    app.dependency_overrides[get_email_service] = lambda: emails
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def profiles(db) -> Dict[str, Profile]:
    kitchen = Caterer(name="Holy Cross Kitchen", email="kitchen@example.com")
    harvest = Caterer(name="Harvest Table", email="harvest@example.com")
    db.add_all([kitchen, harvest])
    db.flush()

    created = {
        "admin": Profile(email="admin@example.com", full_name="Ada Admin", role=ProfileRole.ADMIN, api_key_hash=hash_token(ADMIN_KEY)),
        "staff": Profile(email="staff@example.com", full_name="Sam Staff", role=ProfileRole.STAFF, api_key_hash=hash_token(STAFF_KEY)),
        "caterer": Profile(
            email="chef@example.com",
            full_name="Chris Chef",
            role=ProfileRole.CATERER,
            caterer_id=kitchen.id,
            api_key_hash=hash_token(CATERER_KEY),
        ),
        "other_caterer": Profile(
            email="other@example.com",
            full_name="Olive Other",
            role=ProfileRole.CATERER,
            caterer_id=harvest.id,
            api_key_hash=hash_token(OTHER_CATERER_KEY),
        ),
    }
    db.add_all(created.values())
    db.commit()
    return created


def auth(key: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {key}"}


@pytest.fixture
def centre(db) -> None:
    db.add_all(
        [
            Space(id="chapel", name="Chapel", capacity=80),
            Space(id="dining-hall", name="Dining Hall", capacity=120),
            RoomType(id="twin", name="Twin", capacity=2),
            RoomType(id="single", name="Single", capacity=1),
        ]
    )
    db.flush()
    db.add_all(
        [
            Room(id="room-101", name="St Brigid", room_number="101", room_type_id="single"),
            Room(id="room-103", name="St Columba", room_number="103", room_type_id="twin", base_beds=2, extra_bed_allowed=True),
        ]
    )
    db.commit()


def make_booking(
    db: Session,
    arrival: date,
    departure: date,
    status: BookingStatus = BookingStatus.PENDING,
    reference: Optional[str] = None,
    **fields: Any,
) -> Booking:
    booking = Booking(
        reference=reference,
        arrival_date=arrival,
        departure_date=departure,
        nights=(departure - arrival).days,
        status=status,
        **fields,
    )
    db.add(booking)
    db.commit()
    return booking


def csrf_headers(client: TestClient) -> Dict[str, str]:
    token = client.get("/api/csrf-token").json()["csrf_token"]
    return {"X-CSRF-Token": token}


def aged_time_token(seconds: int = 10) -> str:
    return generate_time_token(int(time.time() * 1000) - seconds * 1000)
