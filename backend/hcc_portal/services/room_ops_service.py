from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from hcc_portal.models import Booking, BookingStatus, Profile, Room, RoomAction, RoomAssignment, RoomStatusLog
from hcc_portal.services.errors import NotFoundError
from hcc_portal.services.room_status import (
    RoomSnapshot,
    StatusLogEntry,
    StayAssignment,
    derive_room_statuses,
)
from hcc_portal.stores.event_bus import EventBus, event_bus

logger = logging.getLogger(__name__)


def room_snapshot(room: Room) -> RoomSnapshot:
    return RoomSnapshot(
        id=room.id,
        name=room.name,
        room_number=room.room_number,
        level=room.level,
        wing=room.wing,
        capacity=room.room_type.capacity if room.room_type else None,
        room_type=room.room_type.to_dict() if room.room_type else None,
    )


def stay_assignment(assignment: RoomAssignment) -> StayAssignment:
    booking = assignment.booking
    return StayAssignment(
        room_id=assignment.room_id,
        booking_id=booking.id,
        status=booking.status,
        arrival_date=booking.arrival_date,
        departure_date=booking.departure_date,
        guest_names=tuple(assignment.guest_names or ()),
        extra_bed_selected=assignment.extra_bed_selected,
        ensuite_selected=assignment.ensuite_selected,
        private_study_selected=assignment.private_study_selected,
        booking_name=booking.guest_label,
        accommodation_requests=dict(booking.accommodation_requests or {}),
    )


class RoomOpsService:
    """Housekeeping board: derived room statuses plus the cleaned/setup log."""

    def __init__(self, bus: EventBus | None = None) -> None:
        self.bus = bus or event_bus

    async def get_status_board(self, session: AsyncSession, selected_date: date) -> Dict[str, Any]:
        rooms = await session.execute(
            select(Room).where(Room.active.is_(True)).order_by(Room.room_number, Room.id)
        )
        # anything that could be in the room, leaving today or arriving tomorrow
        assignments = await session.execute(
            select(RoomAssignment)
            .join(Booking, Booking.id == RoomAssignment.booking_id)
            .where(
                Booking.status != BookingStatus.CANCELLED,
                Booking.arrival_date <= selected_date + timedelta(days=1),
                Booking.departure_date >= selected_date,
            )
            .order_by(Booking.arrival_date, RoomAssignment.id)
        )
        logs = await session.execute(select(RoomStatusLog).where(RoomStatusLog.action_date == selected_date))

        views = derive_room_statuses(
            selected_date,
            [room_snapshot(room) for room in rooms.unique().scalars().all()],
            [stay_assignment(a) for a in assignments.unique().scalars().all()],
            [StatusLogEntry(room_id=log.room_id, action_type=log.action_type) for log in logs.scalars().all()],
        )
        summary: Dict[str, int] = {}
        for view in views:
            summary[view.status.value] = summary.get(view.status.value, 0) + 1
        return {
            "date": selected_date.isoformat(),
            "rooms": [view.to_dict() for view in views],
            "summary": summary,
        }

    async def _record(
        self,
        session: AsyncSession,
        room_id: str,
        action_date: date,
        action: RoomAction,
        actor: Profile,
        booking_id: Optional[int] = None,
    ) -> RoomStatusLog:
        room = await session.get(Room, room_id)
        if not room:
            raise NotFoundError("Room not found")

        result = await session.execute(
            select(RoomStatusLog).where(
                RoomStatusLog.room_id == room_id,
                RoomStatusLog.action_date == action_date,
                RoomStatusLog.action_type == action,
            )
        )
        log = result.scalar_one_or_none()
        if log is None:
            log = RoomStatusLog(room_id=room_id, action_date=action_date, action_type=action)
            session.add(log)
        log.booking_id = booking_id
        log.performed_by = actor.id
        await session.commit()

        logger.info(
            "room_action_recorded",
            extra={"room_id": room_id, "action": action.value, "action_date": action_date.isoformat(), "profile_id": actor.id},
        )
        await self.bus.publish(
            "rooms",
            {"type": "room.action", "room_id": room_id, "action": action.value, "date": action_date.isoformat()},
        )
        return log

    async def mark_cleaned(
        self,
        session: AsyncSession,
        room_id: str,
        action_date: date,
        actor: Profile,
        booking_id: Optional[int] = None,
    ) -> RoomStatusLog:
        return await self._record(session, room_id, action_date, RoomAction.CLEANED, actor, booking_id)

    async def mark_setup_complete(
        self,
        session: AsyncSession,
        room_id: str,
        action_date: date,
        actor: Profile,
        booking_id: Optional[int] = None,
    ) -> RoomStatusLog:
        return await self._record(session, room_id, action_date, RoomAction.SETUP_COMPLETE, actor, booking_id)

    async def undo_action(self, session: AsyncSession, room_id: str, action_date: date, action: RoomAction) -> bool:
        result = await session.execute(
            delete(RoomStatusLog).where(
                RoomStatusLog.room_id == room_id,
                RoomStatusLog.action_date == action_date,
                RoomStatusLog.action_type == action,
            )
        )
        await session.commit()
        removed = bool(result.rowcount)
        if removed:
            await self.bus.publish(
                "rooms",
                {"type": "room.action_undone", "room_id": room_id, "action": action.value, "date": action_date.isoformat()},
            )
        return removed


def get_room_ops_service() -> RoomOpsService:
    return RoomOpsService()

