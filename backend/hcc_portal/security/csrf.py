from __future__ import annotations

import hmac
import logging
import secrets
from typing import Iterable, Optional
from urllib.parse import urlparse

from fastapi import Depends, HTTPException, Request, Response

from hcc_portal.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)

CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_MAX_AGE_SECONDS = 60 * 60
TOKEN_LENGTH = 32


def generate_csrf_token() -> str:
    return secrets.token_urlsafe(TOKEN_LENGTH)


def set_csrf_cookie(response: Response, token: str, secure: bool = False) -> None:
    response.set_cookie(
        CSRF_COOKIE_NAME,
        token,
        max_age=CSRF_MAX_AGE_SECONDS,
        httponly=True,
        secure=secure,
        samesite="strict",
        path="/",
    )


def tokens_match(cookie_token: Optional[str], submitted_token: Optional[str]) -> bool:
    if not cookie_token or not submitted_token:
        return False
    return hmac.compare_digest(cookie_token.encode("utf-8"), submitted_token.encode("utf-8"))


def validate_origin(request: Request, allowed_origins: Iterable[str] = ()) -> bool:
    """Same-host or explicitly allowed ``Origin`` header."""

    origin = request.headers.get("origin")
    if not origin:
        return False
    if origin.rstrip("/") in {allowed.rstrip("/") for allowed in allowed_origins}:
        return True
    host = request.headers.get("host")
    return bool(host) and urlparse(origin).netloc == host


async def require_csrf(request: Request, settings: Settings = Depends(get_settings)) -> None:
    """Double-submit check: the cookie must match the ``X-CSRF-Token`` header.

    Browsers send ``Origin`` on cross-site POSTs, so when present it must be
    this host or one of the configured frontend origins.
    """

    if not settings.csrf_enabled:
        return
    cookie_token = request.cookies.get(CSRF_COOKIE_NAME)
    if not cookie_token:
        message = "CSRF token missing from cookies"
    elif not request.headers.get(CSRF_HEADER_NAME):
        message = "CSRF token missing from request"
    elif not tokens_match(cookie_token, request.headers.get(CSRF_HEADER_NAME)):
        message = "CSRF token mismatch"
    elif request.headers.get("origin") and not validate_origin(request, settings.frontend_origins):
        message = "Invalid request origin"
    else:
        return
    logger.warning("csrf_rejected", extra={"path": request.url.path, "reason": message})
    raise HTTPException(status_code=403, detail={"error": "CSRF validation failed", "message": message})
