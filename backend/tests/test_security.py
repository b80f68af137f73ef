from __future__ import annotations

import asyncio
import json
import time
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from starlette.requests import Request

from hcc_portal.models import BookingStatus
from hcc_portal.security import rate_limit
from hcc_portal.security.bot_detection import (
    generate_time_token,
    submission_seconds,
    validate_bot_detection,
    validate_submission_time,
)
from hcc_portal.security.csrf import tokens_match, validate_origin
from hcc_portal.security.rate_limit import RateLimitConfig, RateLimiter, RateLimitResult, parse_window
from hcc_portal.security.tokens import (
    generate_custom_pricing_token,
    generate_guest_token,
    generate_reference,
    hash_token,
    is_valid_token_format,
    mask_token,
    validate_custom_pricing_token,
    verify_token,
)
from hcc_portal.stores.rate_limit_store import RateLimitStore
from hcc_portal.utils.config import Settings

NOW_MS = 1_700_000_000_000


def test_hash_and_verify_token() -> None:
    token = "abc123"

    assert hash_token(token) == hash_token(token)
    assert verify_token(token, hash_token(token))
    assert not verify_token("other", hash_token(token))
    assert not verify_token(token, None)


def test_custom_pricing_token_checks() -> None:
    issued = generate_custom_pricing_token()
    now = datetime.now(timezone.utc)

    assert validate_custom_pricing_token(issued.token, issued.hash, issued.expires_at, BookingStatus.AWAITING_DETAILS).valid
    assert validate_custom_pricing_token("nope", issued.hash, issued.expires_at, BookingStatus.AWAITING_DETAILS).reason == "invalid_token"
    assert (
        validate_custom_pricing_token(issued.token, issued.hash, now - timedelta(days=1), BookingStatus.AWAITING_DETAILS).reason
        == "expired"
    )
    assert validate_custom_pricing_token(issued.token, issued.hash, issued.expires_at, BookingStatus.PENDING).reason == "already_used"


def test_naive_expiry_is_treated_as_utc() -> None:
    issued = generate_custom_pricing_token()
    naive = (datetime.now(timezone.utc) + timedelta(days=1)).replace(tzinfo=None)

    assert validate_custom_pricing_token(issued.token, issued.hash, naive, BookingStatus.AWAITING_DETAILS).valid


def test_guest_token_is_uuid_shaped() -> None:
    issued = generate_guest_token()

    assert is_valid_token_format(issued.token)
    assert verify_token(issued.token, issued.hash)


def test_reference_and_masking() -> None:
    assert generate_reference("HCC", 7, year=2024) == "HCC-2024-0007"
    assert mask_token("short") == "***"
    assert mask_token("abcdefghijklmnop") == "abcdef...mnop"
    assert not is_valid_token_format("has spaces in it!!")


def test_submission_time_window() -> None:
    assert validate_submission_time(generate_time_token(NOW_MS - 5000), now_ms=NOW_MS).valid

    fast = validate_submission_time(generate_time_token(NOW_MS - 1000), now_ms=NOW_MS)
    assert not fast.valid and fast.too_fast

    future = validate_submission_time(generate_time_token(NOW_MS + 60_000), now_ms=NOW_MS)
    assert not future.valid and future.too_fast

    stale = validate_submission_time(generate_time_token(NOW_MS - 2 * 3600 * 1000), now_ms=NOW_MS)
    assert not stale.valid and not stale.too_fast

    assert validate_submission_time("not base64!", now_ms=NOW_MS).message == "Invalid time token format"
    assert validate_submission_time(None).message == "Missing time validation token"
    assert validate_submission_time(1718000000000, now_ms=NOW_MS).message == "Invalid time token format"
    assert validate_bot_detection({"_form_time": 1718000000000}, "website_url").reason == "invalid_time"


def test_bot_detection_reasons() -> None:
    aged = generate_time_token(int(time.time() * 1000) - 10_000)

    assert validate_bot_detection({"website_url": "http://spam"}, "website_url").reason == "honeypot"
    assert validate_bot_detection({"website_url": "  "}, "website_url").reason == "invalid_time"
    assert validate_bot_detection({"_form_time": generate_time_token()}, "website_url").reason == "too_fast"
    assert submission_seconds({}) is None
    assert submission_seconds({"_form_time": aged}) is not None


def test_parse_window() -> None:
    assert parse_window("15m") == 900
    assert parse_window("1h") == 3600
    with pytest.raises(ValueError):
        parse_window("15x")


def test_memory_store_resets_after_window() -> None:
    store = RateLimitStore()

    assert store.hit("k", 1000, NOW_MS).count == 1
    assert store.hit("k", 1000, NOW_MS + 500).count == 2
    assert store.hit("k", 1000, NOW_MS + 1500).count == 1
    assert store.cleanup(NOW_MS + 5000) == 1


def test_memory_limiter_blocks_after_max() -> None:
    limiter = RateLimiter(settings=Settings(), store=RateLimitStore(), enabled=True)
    config = RateLimitConfig(max=2, window="1m")

    async def run():
        return [await limiter.hit("enquiry", "1.2.3.4", config) for _ in range(3)]

    results = asyncio.run(run())

    assert [result.success for result in results] == [True, True, False]
    assert results[0].remaining == 1
    assert results[2].remaining == 0


def test_memory_limiter_evicts_expired_clients(monkeypatch) -> None:
    clock = {"now": NOW_MS}
    monkeypatch.setattr(rate_limit, "_now_ms", lambda: clock["now"])
    store = RateLimitStore(cleanup_interval_ms=60_000)
    limiter = RateLimiter(settings=Settings(), store=store, enabled=True)
    config = RateLimitConfig(max=5, window="1s")

    async def run(clients):
        for client in clients:
            await limiter.hit("enquiry", client, config)

    asyncio.run(run([f"10.0.0.{index}" for index in range(50)]))
    assert len(store) == 50

    clock["now"] = NOW_MS + 30_000
    asyncio.run(run(["10.0.1.1"]))
    assert len(store) == 51

    clock["now"] = NOW_MS + 61_000
    asyncio.run(run(["10.0.1.2"]))
    assert len(store) == 1
    assert store.get("ratelimit:enquiry:10.0.1.2").count == 1


def test_result_headers_include_retry_after_when_blocked() -> None:
    blocked = RateLimitResult(False, 5, 0, NOW_MS + 30_500)

    headers = blocked.headers(now_ms=NOW_MS)

    assert headers["X-RateLimit-Limit"] == "5"
    assert headers["Retry-After"] == "31"
    assert "Retry-After" not in RateLimitResult(True, 5, 4, NOW_MS).headers(now_ms=NOW_MS)


def _upstash_settings() -> Settings:
    return Settings(UPSTASH_REDIS_REST_URL="https://redis.example.com", UPSTASH_REDIS_REST_TOKEN="secret")


def test_upstash_pipeline_counts_current_request() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["commands"] = json.loads(request.content)
        return httpx.Response(200, json=[{"result": 0}, {"result": 4}, {"result": 1}, {"result": 1}])

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    limiter = RateLimiter(settings=_upstash_settings(), client=client, enabled=True)

    result = asyncio.run(limiter.hit("enquiry", "1.2.3.4"))

    assert seen["url"] == "https://redis.example.com/pipeline"
    assert seen["auth"] == "Bearer secret"
    assert [command[0] for command in seen["commands"]] == ["ZREMRANGEBYSCORE", "ZCARD", "ZADD", "EXPIRE"]
    assert result.success is True
    assert result.remaining == 0


def test_upstash_failure_falls_back_to_memory() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "boom"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    store = RateLimitStore()
    limiter = RateLimiter(settings=_upstash_settings(), store=store, client=client, enabled=True)

    result = asyncio.run(limiter.hit("booking", "5.6.7.8"))

    assert result.success is True
    assert result.remaining == 2
    assert store.get("ratelimit:booking:5.6.7.8").count == 1


def _request(headers):
    return Request(
        {
            "type": "http",
            "method": "POST",
            "path": "/",
            "headers": [(key.lower().encode(), value.encode()) for key, value in headers.items()],
        }
    )


def test_tokens_match() -> None:
    assert tokens_match("abc", "abc")
    assert not tokens_match("abc", "abd")
    assert not tokens_match(None, "abc")
    assert not tokens_match("abc", "")


def test_validate_origin() -> None:
    assert validate_origin(_request({"origin": "https://portal.example.com", "host": "portal.example.com"}))
    assert not validate_origin(_request({"origin": "https://evil.example.com", "host": "portal.example.com"}))
    assert not validate_origin(_request({"host": "portal.example.com"}))
    assert validate_origin(
        _request({"origin": "http://localhost:3000", "host": "api.example.com"}),
        ["http://localhost:3000/"],
    )
