from __future__ import annotations

import hashlib
import hmac
import re
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from hcc_portal.models.booking import BookingStatus

CUSTOM_PRICING_TOKEN_DAYS = 30

_BASE64URL = re.compile(r"^[A-Za-z0-9_-]+$")
_UUID = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


@dataclass(frozen=True)
class IssuedToken:
    token: str
    hash: str
    expires_at: Optional[datetime] = None


@dataclass(frozen=True)
class TokenCheck:
    valid: bool
    reason: Optional[str] = None


def generate_secure_token(length: int = 32) -> str:
    return secrets.token_urlsafe(length)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def verify_token(token: str, stored_hash: Optional[str]) -> bool:
    if not token or not stored_hash:
        return False
    return hmac.compare_digest(hash_token(token), stored_hash)


def generate_custom_pricing_token(days: int = CUSTOM_PRICING_TOKEN_DAYS) -> IssuedToken:
    token = generate_secure_token(32)
    return IssuedToken(
        token=token,
        hash=hash_token(token),
        expires_at=datetime.now(timezone.utc) + timedelta(days=days),
    )


def generate_guest_token() -> IssuedToken:
    token = str(uuid.uuid4())
    return IssuedToken(token=token, hash=hash_token(token))


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def validate_custom_pricing_token(
    token: str,
    stored_hash: Optional[str],
    expires_at: Optional[datetime],
    booking_status: BookingStatus,
    now: Optional[datetime] = None,
) -> TokenCheck:
    """Check a custom booking link token against what the booking stores.

    The hash is cleared once the customer submits their details, so a consumed
    link reads as ``invalid_token`` from then on.
    """

    if not verify_token(token, stored_hash):
        return TokenCheck(False, "invalid_token")
    current = now or datetime.now(timezone.utc)
    if expires_at is None or _as_utc(expires_at) < current:
        return TokenCheck(False, "expired")
    if booking_status != BookingStatus.AWAITING_DETAILS:
        return TokenCheck(False, "already_used")
    return TokenCheck(True)


def validate_guest_token(token: str, stored_hash: Optional[str]) -> bool:
    return verify_token(token, stored_hash)


def generate_reference(prefix: str, sequence: int, year: Optional[int] = None) -> str:
    year = year or datetime.now(timezone.utc).year
    return f"{prefix}-{year}-{sequence:04d}"


def generate_api_key(prefix: str = "hcc") -> str:
    return f"{prefix}_{generate_secure_token(32)}"


def mask_token(token: str) -> str:
    if len(token) < 12:
        return "***"
    return f"{token[:6]}...{token[-4:]}"


def is_valid_token_format(token: str) -> bool:
    if len(token) < 16:
        return False
    return bool(_BASE64URL.match(token) or _UUID.match(token))
