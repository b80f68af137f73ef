from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hcc_portal.db.database import get_session
from hcc_portal.models import Booking, RoomAssignment, Severity, SpaceReservation
from hcc_portal.security.auth import get_portal_booking
from hcc_portal.security.rate_limit import rate_limit
from hcc_portal.services.catering_service import CateringService, get_catering_service
from hcc_portal.services.rooming_service import RoomingService, get_rooming_service


class GroupRequest(BaseModel):
    group_name: str = Field(..., min_length=1, max_length=255)
    preferred_room_type: Optional[str] = None
    special_requests: Optional[str] = None


class GroupUpdate(BaseModel):
    group_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    preferred_room_type: Optional[str] = None
    special_requests: Optional[str] = None


class GuestRequest(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    rooming_group_id: Optional[int] = None


class MoveGuestRequest(BaseModel):
    rooming_group_id: Optional[int] = None


class DietaryRequest(BaseModel):
    person_name: str = Field(..., min_length=1, max_length=255)
    diet_type: str = Field(..., min_length=1, max_length=64)
    allergy: Optional[str] = None
    severity: Optional[Severity] = None
    notes: Optional[str] = None


class DietaryUpdate(BaseModel):
    person_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    diet_type: Optional[str] = Field(default=None, min_length=1, max_length=64)
    allergy: Optional[str] = None
    severity: Optional[Severity] = None
    notes: Optional[str] = None


router = APIRouter(
    prefix="/portal/bookings/{reference}",
    tags=["portal"],
    dependencies=[Depends(rate_limit("portal"))],
)


@router.get("")
async def get_booking(
    booking: Booking = Depends(get_portal_booking),
    db: AsyncSession = Depends(get_session),
    catering: CateringService = Depends(get_catering_service),
) -> Dict[str, Any]:
    spaces = await db.execute(
        select(SpaceReservation)
        .where(SpaceReservation.booking_id == booking.id)
        .order_by(SpaceReservation.service_date, SpaceReservation.start_time)
    )
    rooms = await db.execute(select(RoomAssignment).where(RoomAssignment.booking_id == booking.id))
    return {
        "booking": {
            **booking.summary(),
            "organization": booking.organization,
            "event_name": booking.event_name,
            "event_type": booking.event_type,
            "headcount": booking.headcount,
            "nights": booking.nights,
            "deposit_status": booking.deposit_status.value,
            "accommodation_requests": booking.accommodation_requests or {},
        },
        "space_reservations": [item.to_dict() for item in spaces.unique().scalars().all()],
        "room_assignments": [item.to_dict() for item in rooms.unique().scalars().all()],
        "meal_jobs": await catering.list_for_booking(db, booking.id),
    }


@router.get("/rooming")
async def list_rooming(
    booking: Booking = Depends(get_portal_booking),
    db: AsyncSession = Depends(get_session),
    service: RoomingService = Depends(get_rooming_service),
) -> Dict[str, Any]:
    return await service.list_groups(db, booking)


@router.post("/rooming/groups", status_code=201)
async def create_group(
    payload: GroupRequest,
    booking: Booking = Depends(get_portal_booking),
    db: AsyncSession = Depends(get_session),
    service: RoomingService = Depends(get_rooming_service),
) -> Dict[str, Any]:
    group = await service.create_group(db, booking, payload.model_dump())
    return {"group": group.to_dict()}


@router.patch("/rooming/groups/{group_id}")
async def update_group(
    group_id: int,
    payload: GroupUpdate,
    booking: Booking = Depends(get_portal_booking),
    db: AsyncSession = Depends(get_session),
    service: RoomingService = Depends(get_rooming_service),
) -> Dict[str, Any]:
    group = await service.update_group(db, booking, group_id, payload.model_dump(exclude_unset=True))
    return {"group": group.to_dict()}


@router.delete("/rooming/groups/{group_id}", status_code=204)
async def delete_group(
    group_id: int,
    booking: Booking = Depends(get_portal_booking),
    db: AsyncSession = Depends(get_session),
    service: RoomingService = Depends(get_rooming_service),
) -> None:
    await service.delete_group(db, booking, group_id)


@router.post("/rooming/guests", status_code=201)
async def add_guest(
    payload: GuestRequest,
    booking: Booking = Depends(get_portal_booking),
    db: AsyncSession = Depends(get_session),
    service: RoomingService = Depends(get_rooming_service),
) -> Dict[str, Any]:
    guest = await service.add_guest(db, booking, payload.full_name, payload.rooming_group_id)
    return {"guest": guest.to_dict()}


@router.delete("/rooming/guests/{guest_id}", status_code=204)
async def remove_guest(
    guest_id: int,
    booking: Booking = Depends(get_portal_booking),
    db: AsyncSession = Depends(get_session),
    service: RoomingService = Depends(get_rooming_service),
) -> None:
    await service.remove_guest(db, booking, guest_id)


@router.post("/rooming/guests/{guest_id}/move")
async def move_guest(
    guest_id: int,
    payload: MoveGuestRequest,
    booking: Booking = Depends(get_portal_booking),
    db: AsyncSession = Depends(get_session),
    service: RoomingService = Depends(get_rooming_service),
) -> Dict[str, Any]:
    return await service.move_guest(db, booking, guest_id, payload.rooming_group_id)


@router.get("/dietary")
async def list_dietary(
    booking: Booking = Depends(get_portal_booking),
    db: AsyncSession = Depends(get_session),
    service: RoomingService = Depends(get_rooming_service),
) -> Dict[str, Any]:
    profiles = await service.list_dietary(db, booking)
    return {"dietary_profiles": [profile.to_dict() for profile in profiles]}


@router.post("/dietary", status_code=201)
async def create_dietary(
    payload: DietaryRequest,
    booking: Booking = Depends(get_portal_booking),
    db: AsyncSession = Depends(get_session),
    service: RoomingService = Depends(get_rooming_service),
) -> Dict[str, Any]:
    profile = await service.create_dietary(db, booking, payload.model_dump())
    return {"dietary_profile": profile.to_dict()}


@router.patch("/dietary/{profile_id}")
async def update_dietary(
    profile_id: int,
    payload: DietaryUpdate,
    booking: Booking = Depends(get_portal_booking),
    db: AsyncSession = Depends(get_session),
    service: RoomingService = Depends(get_rooming_service),
) -> Dict[str, Any]:
    profile = await service.update_dietary(db, booking, profile_id, payload.model_dump(exclude_unset=True))
    return {"dietary_profile": profile.to_dict()}


@router.delete("/dietary/{profile_id}", status_code=204)
async def delete_dietary(
    profile_id: int,
    booking: Booking = Depends(get_portal_booking),
    db: AsyncSession = Depends(get_session),
    service: RoomingService = Depends(get_rooming_service),
) -> None:
    await service.delete_dietary(db, booking, profile_id)
