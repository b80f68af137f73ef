from __future__ import annotations

import asyncio
import json
import logging
from collections import defaultdict
from typing import Any, AsyncIterator, DefaultDict, Set


logger = logging.getLogger(__name__)

CHANNELS = frozenset({"bookings", "enquiries", "rooms", "catering"})


class EventBus:
    """In-memory fan-out of operational events to every listener of a channel."""

    def __init__(self) -> None:
        self._subscribers: DefaultDict[str, Set[asyncio.Queue[dict[str, Any]]]] = defaultdict(set)

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, ()))

    async def publish(self, channel: str, event: dict[str, Any]) -> None:
        payload = {"channel": channel, **event}
        for queue in list(self._subscribers.get(channel, ())):
            await queue.put(payload)
        logger.info(
            "channel_event",
            extra={
                "channel": channel,
                "event_type": event.get("type"),
                "event_json": json.dumps(payload, default=str),
            },
        )

    def subscribe(self, channel: str) -> asyncio.Queue[dict[str, Any]]:
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._subscribers[channel].add(queue)
        return queue

    def unsubscribe(self, channel: str, queue: asyncio.Queue[dict[str, Any]]) -> None:
        listeners = self._subscribers.get(channel)
        if listeners is None:
            return
        listeners.discard(queue)
        if not listeners:
            del self._subscribers[channel]

    async def stream(self, channel: str) -> AsyncIterator[dict[str, Any]]:
        queue = self.subscribe(channel)
        try:
            while True:
                yield await queue.get()
        finally:
            self.unsubscribe(channel, queue)


event_bus = EventBus()
