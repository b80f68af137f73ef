from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hcc_portal.models import Booking, DietaryProfile, Guest, RoomingGroup
from hcc_portal.services.errors import NotFoundError, ServiceError
from hcc_portal.stores.event_bus import EventBus, event_bus

logger = logging.getLogger(__name__)

GROUP_FIELDS = ("group_name", "preferred_room_type", "special_requests")
DIETARY_FIELDS = ("person_name", "diet_type", "allergy", "severity", "notes")


class RoomingService:
    """Portal-side rooming list and dietary requirements for a single booking.

    Every call is scoped to the booking the portal token resolved to, so rows that
    belong to another booking read as missing.
    """

    def __init__(self, bus: EventBus | None = None) -> None:
        self.bus = bus or event_bus

    async def _publish(self, event_type: str, booking: Booking, **extra: Any) -> None:
        await self.bus.publish("bookings", {"type": event_type, "booking_id": booking.id, **extra})

    async def _group(self, session: AsyncSession, booking: Booking, group_id: int) -> RoomingGroup:
        group = await session.get(RoomingGroup, group_id)
        if not group or group.booking_id != booking.id:
            raise NotFoundError("Rooming group not found")
        return group

    async def _guest(self, session: AsyncSession, booking: Booking, guest_id: int) -> Guest:
        guest = await session.get(Guest, guest_id)
        if not guest or guest.booking_id != booking.id:
            raise NotFoundError("Guest not found")
        return guest

    async def list_groups(self, session: AsyncSession, booking: Booking) -> Dict[str, Any]:
        groups = await session.execute(
            select(RoomingGroup).where(RoomingGroup.booking_id == booking.id).order_by(RoomingGroup.created_at, RoomingGroup.id)
        )
        guests = await session.execute(
            select(Guest).where(Guest.booking_id == booking.id).order_by(Guest.created_at, Guest.id)
        )
        members: Dict[Optional[int], List[Dict[str, Any]]] = {}
        for guest in guests.scalars().all():
            members.setdefault(guest.rooming_group_id, []).append(guest.to_dict())

        return {
            "groups": [{**group.to_dict(), "guests": members.get(group.id, [])} for group in groups.scalars().all()],
            "ungrouped": members.get(None, []),
        }

    async def create_group(self, session: AsyncSession, booking: Booking, data: Mapping[str, Any]) -> RoomingGroup:
        name = (data.get("group_name") or "").strip()
        if not name:
            raise ServiceError("Group name is required.", 400)
        group = RoomingGroup(
            booking_id=booking.id,
            group_name=name,
            preferred_room_type=data.get("preferred_room_type") or None,
            special_requests=data.get("special_requests") or None,
        )
        session.add(group)
        await session.commit()
        await self._publish("rooming.group_created", booking, group_id=group.id)
        return group

    async def update_group(
        self,
        session: AsyncSession,
        booking: Booking,
        group_id: int,
        changes: Mapping[str, Any],
    ) -> RoomingGroup:
        group = await self._group(session, booking, group_id)
        for key in GROUP_FIELDS:
            if key in changes:
                setattr(group, key, changes[key])
        await session.commit()
        return group

    async def delete_group(self, session: AsyncSession, booking: Booking, group_id: int) -> None:
        group = await self._group(session, booking, group_id)
        await session.execute(update(Guest).where(Guest.rooming_group_id == group.id).values(rooming_group_id=None))
        await session.delete(group)
        await session.commit()
        logger.info("rooming_group_deleted", extra={"booking_id": booking.id, "group_id": group_id})
        await self._publish("rooming.group_deleted", booking, group_id=group_id)

    async def add_guest(
        self,
        session: AsyncSession,
        booking: Booking,
        full_name: str,
        group_id: Optional[int] = None,
    ) -> Guest:
        name = full_name.strip()
        if not name:
            raise ServiceError("Guest name is required.", 400)
        if group_id is not None:
            await self._group(session, booking, group_id)
        guest = Guest(booking_id=booking.id, full_name=name, rooming_group_id=group_id)
        session.add(guest)
        await session.commit()
        return guest

    async def remove_guest(self, session: AsyncSession, booking: Booking, guest_id: int) -> None:
        guest = await self._guest(session, booking, guest_id)
        await session.delete(guest)
        await session.commit()

    async def move_guest(
        self,
        session: AsyncSession,
        booking: Booking,
        guest_id: int,
        group_id: Optional[int],
    ) -> Dict[str, Any]:
        guest = await self._guest(session, booking, guest_id)
        if group_id is not None:
            await self._group(session, booking, group_id)
        guest.rooming_group_id = group_id
        await session.commit()
        await self._publish("rooming.guest_moved", booking, guest_id=guest.id, group_id=group_id)
        return await self.list_groups(session, booking)

    # Dietary

    async def list_dietary(self, session: AsyncSession, booking: Booking) -> List[DietaryProfile]:
        result = await session.execute(
            select(DietaryProfile).where(DietaryProfile.booking_id == booking.id).order_by(DietaryProfile.id)
        )
        return list(result.scalars().all())

    async def create_dietary(self, session: AsyncSession, booking: Booking, data: Mapping[str, Any]) -> DietaryProfile:
        profile = DietaryProfile(booking_id=booking.id, **{key: data.get(key) for key in DIETARY_FIELDS})
        session.add(profile)
        await session.commit()
        await self.bus.publish("catering", {"type": "dietary.created", "booking_id": booking.id, "profile_id": profile.id})
        return profile

    async def _dietary(self, session: AsyncSession, booking: Booking, profile_id: int) -> DietaryProfile:
        profile = await session.get(DietaryProfile, profile_id)
        if not profile or profile.booking_id != booking.id:
            raise NotFoundError("Dietary profile not found")
        return profile

    async def update_dietary(
        self,
        session: AsyncSession,
        booking: Booking,
        profile_id: int,
        changes: Mapping[str, Any],
    ) -> DietaryProfile:
        profile = await self._dietary(session, booking, profile_id)
        for key in DIETARY_FIELDS:
            if key in changes:
                setattr(profile, key, changes[key])
        await session.commit()
        return profile

    async def delete_dietary(self, session: AsyncSession, booking: Booking, profile_id: int) -> None:
        profile = await self._dietary(session, booking, profile_id)
        await session.delete(profile)
        await session.commit()


def get_rooming_service() -> RoomingService:
    return RoomingService()
