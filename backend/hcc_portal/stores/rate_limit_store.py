from __future__ import annotations

from dataclasses import dataclass
from threading import RLock
from typing import Dict, Optional

CLEANUP_INTERVAL_MS = 5 * 60 * 1000


@dataclass
class WindowEntry:
    count: int
    reset_at_ms: int


class RateLimitStore:
    """Thread-safe in-memory counters with a fixed reset time per key.

    Expired keys are swept from ``hit`` at most once per ``cleanup_interval_ms``.
    """

    def __init__(self, cleanup_interval_ms: int = CLEANUP_INTERVAL_MS) -> None:
        self._entries: Dict[str, WindowEntry] = {}
        self._lock = RLock()
        self.cleanup_interval_ms = cleanup_interval_ms
        self._last_cleanup_ms: Optional[int] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def hit(self, key: str, window_ms: int, now_ms: int) -> WindowEntry:
        with self._lock:
            if self._last_cleanup_ms is None:
                self._last_cleanup_ms = now_ms
            elif now_ms - self._last_cleanup_ms >= self.cleanup_interval_ms:
                self.cleanup(now_ms)

            entry = self._entries.get(key)
            if entry is None or entry.reset_at_ms < now_ms:
                entry = WindowEntry(count=1, reset_at_ms=now_ms + window_ms)
                self._entries[key] = entry
            else:
                entry.count += 1
            return WindowEntry(count=entry.count, reset_at_ms=entry.reset_at_ms)

    def get(self, key: str) -> Optional[WindowEntry]:
        with self._lock:
            return self._entries.get(key)

    def cleanup(self, now_ms: int) -> int:
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.reset_at_ms < now_ms]
            for key in expired:
                del self._entries[key]
            self._last_cleanup_ms = now_ms
            return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
