from __future__ import annotations

import base64
import binascii
import logging
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

HONEYPOT_FIELDS = {
    "enquiry": "website_url",
    "booking": "email_confirm",
    "contact": "phone_backup",
}
TIME_TOKEN_FIELD = "_form_time"
MINIMUM_SECONDS = 3
MAXIMUM_SECONDS = 3600


@dataclass(frozen=True)
class TimeCheck:
    valid: bool
    too_fast: bool = False
    elapsed: Optional[float] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class BotCheck:
    valid: bool
    reason: Optional[str] = None


def generate_time_token(now_ms: Optional[int] = None) -> str:
    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return base64.b64encode(str(timestamp).encode("ascii")).decode("ascii")


def validate_honeypot(value: Any) -> bool:
    if value is None:
        return True
    return str(value).strip() == ""


def validate_submission_time(
    token: Any,
    minimum_seconds: float = MINIMUM_SECONDS,
    now_ms: Optional[int] = None,
) -> TimeCheck:
    if not token:
        return TimeCheck(False, message="Missing time validation token")
    if not isinstance(token, str):
        return TimeCheck(False, message="Invalid time token format")

    try:
        loaded_ms = int(base64.b64decode(token, validate=True).decode("ascii"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return TimeCheck(False, message="Invalid time token format")

    now = now_ms if now_ms is not None else int(time.time() * 1000)
    elapsed = (now - loaded_ms) / 1000
    if elapsed < minimum_seconds:
        return TimeCheck(
            False,
            too_fast=True,
            elapsed=elapsed,
            message=f"Form submitted too quickly ({elapsed:.1f}s < {minimum_seconds}s)",
        )
    if loaded_ms > now or elapsed > MAXIMUM_SECONDS:
        return TimeCheck(False, message="Invalid time token")
    return TimeCheck(True, elapsed=elapsed)


def validate_bot_detection(
    body: Mapping[str, Any],
    honeypot_field: str,
    time_token_field: str = TIME_TOKEN_FIELD,
    minimum_seconds: float = MINIMUM_SECONDS,
) -> BotCheck:
    if not validate_honeypot(body.get(honeypot_field)):
        logger.warning("bot_detected", extra={"reason": "honeypot", "field": honeypot_field})
        return BotCheck(False, "honeypot")

    timing = validate_submission_time(body.get(time_token_field), minimum_seconds=minimum_seconds)
    if not timing.valid:
        reason = "too_fast" if timing.too_fast else "invalid_time"
        logger.warning("bot_detected", extra={"reason": reason, "detail": timing.message})
        return BotCheck(False, reason)
    return BotCheck(True)


def submission_seconds(body: Mapping[str, Any], time_token_field: str = TIME_TOKEN_FIELD) -> Optional[int]:
    timing = validate_submission_time(body.get(time_token_field), minimum_seconds=0)
    if timing.elapsed is None:
        return None
    return int(timing.elapsed)
