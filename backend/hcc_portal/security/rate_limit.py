from __future__ import annotations

import logging
import math
import secrets
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional

import httpx
from fastapi import Depends, HTTPException, Request

from hcc_portal.stores.rate_limit_store import RateLimitStore
from hcc_portal.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)

_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


@dataclass(frozen=True)
class RateLimitConfig:
    max: int
    window: str

    @property
    def window_ms(self) -> int:
        return parse_window(self.window) * 1000


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset: int  # epoch milliseconds

    def headers(self, now_ms: Optional[int] = None) -> Dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
        }
        if not self.success:
            headers["Retry-After"] = str(self.retry_after(now_ms))
        return headers

    def retry_after(self, now_ms: Optional[int] = None) -> int:
        now = now_ms if now_ms is not None else _now_ms()
        return max(0, math.ceil((self.reset - now) / 1000))


RATE_LIMITS: Dict[str, RateLimitConfig] = {
    "enquiry": RateLimitConfig(max=5, window="15m"),
    "booking": RateLimitConfig(max=3, window="15m"),
    "pricing": RateLimitConfig(max=20, window="1m"),
    "custom_booking": RateLimitConfig(max=5, window="15m"),
    "portal": RateLimitConfig(max=10, window="1m"),
}


def parse_window(window: str) -> int:
    unit = window[-1:]
    if unit not in _UNITS or not window[:-1].isdigit():
        raise ValueError(f"Invalid window format: {window}")
    return int(window[:-1]) * _UNITS[unit]


def _now_ms() -> int:
    return int(time.time() * 1000)


def client_id(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class RateLimiter:
    """Per-endpoint request limiter backed by Upstash Redis or process memory."""

    def __init__(
        self,
        settings: Settings | None = None,
        store: RateLimitStore | None = None,
        client: httpx.AsyncClient | None = None,
        enabled: Optional[bool] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store or RateLimitStore()
        self._client = client
        self.enabled = self.settings.rate_limit_enabled if enabled is None else enabled

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=5.0)
        return self._client

    async def hit(self, endpoint: str, client: str, config: RateLimitConfig | None = None) -> RateLimitResult:
        config = config or RATE_LIMITS.get(endpoint)
        if config is None:
            raise ValueError(f"No rate limit config found for endpoint: {endpoint}")

        identifier = f"ratelimit:{endpoint}:{client}"
        if self.settings.upstash_configured:
            try:
                return await self._hit_upstash(identifier, config)
            except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as error:
                logger.warning(
                    "Upstash rate limiting failed, falling back to in-memory",
                    extra={"identifier": identifier, "error": str(error)},
                )
        return self._hit_memory(identifier, config)

    def _hit_memory(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        entry = self.store.hit(identifier, config.window_ms, _now_ms())
        if entry.count > config.max:
            return RateLimitResult(False, config.max, 0, entry.reset_at_ms)
        return RateLimitResult(True, config.max, config.max - entry.count, entry.reset_at_ms)

    async def _hit_upstash(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        now = _now_ms()
        window_ms = config.window_ms
        commands: List[List[Any]] = [
            ["ZREMRANGEBYSCORE", identifier, 0, now - window_ms],
            ["ZCARD", identifier],
            ["ZADD", identifier, now, f"{now}-{secrets.token_hex(4)}"],
            ["EXPIRE", identifier, math.ceil(window_ms / 1000)],
        ]
        response = await self._http().post(
            f"{self.settings.upstash_redis_rest_url.rstrip('/')}/pipeline",
            headers={
                "Authorization": f"Bearer {self.settings.upstash_redis_rest_token}",
                "Content-Type": "application/json",
            },
            json=commands,
        )
        response.raise_for_status()
        results = response.json()
        # ZCARD runs before ZADD, so the current request is not part of it
        count = int(results[1]["result"]) + 1
        reset = now + window_ms
        if count > config.max:
            return RateLimitResult(False, config.max, 0, reset)
        return RateLimitResult(True, config.max, config.max - count, reset)


@lru_cache
def get_rate_limiter() -> RateLimiter:
    return RateLimiter()


def rate_limit(endpoint: str) -> Callable[..., Any]:
    """Build a route dependency enforcing the preset for ``endpoint``."""

    if endpoint not in RATE_LIMITS:
        raise ValueError(f"No rate limit config found for endpoint: {endpoint}")

    async def dependency(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
        if not limiter.enabled:
            return
        result = await limiter.hit(endpoint, client_id(request))
        if not result.success:
            retry_after = result.retry_after()
            logger.info(
                "rate_limited",
                extra={"endpoint": endpoint, "client": client_id(request), "retry_after": retry_after},
            )
            raise HTTPException(
                status_code=429,
                detail={
                    "error": "Too many requests",
                    "message": "You have exceeded the rate limit. Please try again later.",
                    "retry_after": retry_after,
                },
                headers=result.headers(),
            )

    return dependency
