from __future__ import annotations

import json
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, HTTPException
from sse_starlette.sse import EventSourceResponse

from hcc_portal.models import Profile
from hcc_portal.security.auth import get_current_profile
from hcc_portal.stores.event_bus import CHANNELS, EventBus, event_bus

router = APIRouter(prefix="/events", tags=["events"])

HEARTBEAT_SECONDS = 15


async def channel_stream(channel: str, bus: EventBus = event_bus) -> AsyncGenerator[str, None]:
    yield json.dumps({"type": "status", "status": "listening", "channel": channel})
    events = bus.stream(channel)
    try:
        async for event in events:
            yield json.dumps(event, default=str)
    finally:
        await events.aclose()


@router.get("/{channel}")
async def listen(channel: str, profile: Profile = Depends(get_current_profile)) -> EventSourceResponse:
    if channel not in CHANNELS:
        raise HTTPException(status_code=404, detail="Unknown channel")
    return EventSourceResponse(channel_stream(channel), ping=HEARTBEAT_SECONDS)
