from __future__ import annotations

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from hcc_portal.models import Room, RoomType, Space
from hcc_portal.utils.config import get_settings

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[3]


def centre_data_path() -> Path:
    path = Path(get_settings().centre_data_path)
    if not path.is_absolute():
        path = REPO_ROOT / path
    return path


def load_centre(path: Path | None = None) -> Dict[str, Any]:
    """Read the bundled spaces, room types and rooms. Missing file means an empty centre."""

    path = path or centre_data_path()
    if not path.exists():
        logger.warning("centre_data_missing", extra={"path": str(path)})
        return {"spaces": [], "room_types": [], "rooms": []}

    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    return {key: payload.get(key, []) for key in ("spaces", "room_types", "rooms")}


async def sync_centre(session: AsyncSession, payload: Dict[str, Any]) -> Dict[str, int]:
    """Insert any spaces, room types and rooms that are not in the database yet."""

    created = {"spaces": 0, "room_types": 0, "rooms": 0}

    for item in payload.get("spaces", []):
        if await session.get(Space, str(item["id"])):
            continue
        session.add(Space(id=str(item["id"]), name=item.get("name", item["id"]), capacity=item.get("capacity")))
        created["spaces"] += 1

    for item in payload.get("room_types", []):
        if await session.get(RoomType, str(item["id"])):
            continue
        rate = item.get("nightly_rate")
        session.add(
            RoomType(
                id=str(item["id"]),
                name=item.get("name", item["id"]),
                capacity=int(item.get("capacity", 1)),
                nightly_rate=Decimal(str(rate)) if rate is not None else None,
            )
        )
        created["room_types"] += 1
    await session.flush()

    for item in payload.get("rooms", []):
        if await session.get(Room, str(item["id"])):
            continue
        session.add(
            Room(
                id=str(item["id"]),
                name=item.get("name", item["id"]),
                room_number=item.get("room_number"),
                building=item.get("building"),
                level=item.get("level"),
                wing=item.get("wing"),
                room_type_id=item.get("room_type_id"),
                base_beds=int(item.get("base_beds", 1)),
                extra_bed_allowed=bool(item.get("extra_bed_allowed", False)),
            )
        )
        created["rooms"] += 1

    await session.commit()
    logger.info("centre_synced", extra=created)
    return created
