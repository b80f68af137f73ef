from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hcc_portal.db.database import get_session
from hcc_portal.models import Booking, Profile, ProfileRole
from hcc_portal.security.tokens import hash_token, validate_guest_token

logger = logging.getLogger(__name__)


async def get_current_profile(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_session),
) -> Profile:
    scheme, _, key = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not key.strip():
        raise HTTPException(status_code=401, detail="Missing API key", headers={"WWW-Authenticate": "Bearer"})

    result = await db.execute(select(Profile).where(Profile.api_key_hash == hash_token(key.strip())))
    profile = result.scalar_one_or_none()
    if not profile:
        raise HTTPException(status_code=401, detail="Invalid API key", headers={"WWW-Authenticate": "Bearer"})
    return profile


def require_roles(*roles: ProfileRole) -> Callable[..., Profile]:
    allowed = set(roles)

    async def dependency(profile: Profile = Depends(get_current_profile)) -> Profile:
        if profile.role not in allowed:
            logger.warning(
                "forbidden",
                extra={"profile_id": profile.id, "role": profile.role.value, "allowed": sorted(r.value for r in allowed)},
            )
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return profile

    return dependency


require_admin = require_roles(ProfileRole.ADMIN)
require_staff = require_roles(ProfileRole.ADMIN, ProfileRole.STAFF)
require_caterer = require_roles(ProfileRole.CATERER)


async def get_portal_booking(
    reference: str,
    x_portal_token: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_session),
) -> Booking:
    """Resolve the booking a guest portal token was issued for."""

    if not x_portal_token:
        raise HTTPException(status_code=401, detail="Missing portal token")
    result = await db.execute(select(Booking).where(Booking.reference == reference))
    booking = result.scalar_one_or_none()
    if not booking or not validate_guest_token(x_portal_token, booking.guest_token_hash):
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking
