from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from hcc_portal.db.database import get_session
from hcc_portal.models import BookingStatus, SpaceReservationStatus
from hcc_portal.security.auth import require_admin
from hcc_portal.services.booking_service import (
    ApprovalResult,
    BookingService,
    CustomLinkPayload,
    get_booking_service,
)


class StatusUpdate(BaseModel):
    status: BookingStatus
    cancel_reason: Optional[str] = None
    admin_notes: Optional[str] = None


class DepositRequest(BaseModel):
    amount: Optional[Decimal] = Field(default=None, ge=0)
    reference: Optional[str] = None


class CustomLinkRequest(BaseModel):
    customer_name: str = Field(..., min_length=2, max_length=100)
    customer_email: EmailStr
    organization: Optional[str] = None
    discount_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)
    custom_pricing_notes: Optional[str] = None
    enquiry_id: Optional[int] = None


class SpaceReservationRequest(BaseModel):
    space_id: str
    service_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    status: SpaceReservationStatus = SpaceReservationStatus.HELD


class SpaceReservationUpdate(BaseModel):
    space_id: Optional[str] = None
    service_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    status: Optional[SpaceReservationStatus] = None


class RoomAssignmentRequest(BaseModel):
    room_id: str
    guest_names: List[str] = Field(default_factory=list)
    extra_bed_selected: bool = False
    ensuite_selected: bool = False
    private_study_selected: bool = False


class RoomAssignmentUpdate(BaseModel):
    guest_names: Optional[List[str]] = None
    extra_bed_selected: Optional[bool] = None
    ensuite_selected: Optional[bool] = None
    private_study_selected: Optional[bool] = None


router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])
approval_router = APIRouter(prefix="/bookings", tags=["admin"], dependencies=[Depends(require_admin)])


def _approval_response(result: ApprovalResult) -> Dict[str, Any]:
    return {
        "success": True,
        "booking": result.booking.to_dict(),
        "profile_id": result.profile.id,
        "portal_url": result.portal_url,
        "email_sent": result.email_sent,
    }


@router.get("/bookings")
async def list_bookings(
    status: Optional[BookingStatus] = None,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    return {"bookings": await booking_service.list_bookings_with_conflicts(db, status=status)}


@router.get("/bookings/{booking_id}")
async def get_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    booking = await booking_service.get_booking(db, booking_id)
    reservations = await booking_service.list_space_reservations(db, booking_id)
    assignments = await booking_service.list_room_assignments(db, booking_id)
    return {
        "booking": booking.to_dict(),
        "space_reservations": [item.to_dict() for item in reservations],
        "room_assignments": [item.to_dict() for item in assignments],
    }


@router.get("/bookings/{booking_id}/conflicts")
async def get_booking_conflicts(
    booking_id: int,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    return await booking_service.get_booking_conflicts(db, booking_id)


@router.patch("/bookings/{booking_id}/status")
async def update_status(
    booking_id: int,
    payload: StatusUpdate,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    booking = await booking_service.update_status(
        db, booking_id, payload.status, cancel_reason=payload.cancel_reason, admin_notes=payload.admin_notes
    )
    return {"success": True, "booking": booking.to_dict()}


@router.post("/bookings/{booking_id}/approve")
async def approve_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    return _approval_response(await booking_service.approve_booking(db, booking_id))


@approval_router.post("/{booking_id}/approve")
async def approve_booking_alias(
    booking_id: int,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    return _approval_response(await booking_service.approve_booking(db, booking_id))


@router.post("/bookings/{booking_id}/deposit")
async def record_deposit(
    booking_id: int,
    payload: DepositRequest,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    booking = await booking_service.record_deposit(db, booking_id, amount=payload.amount, reference=payload.reference)
    return {"success": True, "booking": booking.to_dict()}


@router.post("/custom-links", status_code=201)
async def create_custom_link(
    payload: CustomLinkRequest,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    result = await booking_service.create_custom_link(
        db,
        CustomLinkPayload(
            customer_name=payload.customer_name,
            customer_email=str(payload.customer_email),
            organization=payload.organization,
            discount_percentage=payload.discount_percentage,
            custom_pricing_notes=payload.custom_pricing_notes,
            enquiry_id=payload.enquiry_id,
        ),
    )
    return {
        "success": True,
        "booking_id": result.booking.id,
        "reference": result.booking.reference,
        "token": result.token,
        "booking_url": result.booking_url,
        "expires_at": result.expires_at.isoformat(),
    }


@router.get("/bookings/{booking_id}/spaces")
async def list_space_reservations(
    booking_id: int,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    reservations = await booking_service.list_space_reservations(db, booking_id)
    return {"space_reservations": [item.to_dict() for item in reservations]}


@router.post("/bookings/{booking_id}/spaces", status_code=201)
async def reserve_space(
    booking_id: int,
    payload: SpaceReservationRequest,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    reservation = await booking_service.reserve_space(
        db,
        booking_id,
        payload.space_id,
        payload.service_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        status=payload.status,
    )
    return {"space_reservation": reservation.to_dict()}


@router.patch("/space-reservations/{reservation_id}")
async def move_space_reservation(
    reservation_id: int,
    payload: SpaceReservationUpdate,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    reservation = await booking_service.move_space_reservation(
        db, reservation_id, payload.model_dump(exclude_unset=True)
    )
    return {"space_reservation": reservation.to_dict()}


@router.delete("/space-reservations/{reservation_id}", status_code=204)
async def remove_space_reservation(
    reservation_id: int,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> None:
    await booking_service.remove_space_reservation(db, reservation_id)


@router.get("/bookings/{booking_id}/rooms")
async def list_room_assignments(
    booking_id: int,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    assignments = await booking_service.list_room_assignments(db, booking_id)
    return {"room_assignments": [item.to_dict() for item in assignments]}


@router.post("/bookings/{booking_id}/rooms", status_code=201)
async def assign_room(
    booking_id: int,
    payload: RoomAssignmentRequest,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    assignment = await booking_service.assign_room(
        db,
        booking_id,
        payload.room_id,
        guest_names=payload.guest_names,
        extra_bed_selected=payload.extra_bed_selected,
        ensuite_selected=payload.ensuite_selected,
        private_study_selected=payload.private_study_selected,
    )
    return {"room_assignment": assignment.to_dict()}


@router.patch("/room-assignments/{assignment_id}")
async def update_room_assignment(
    assignment_id: int,
    payload: RoomAssignmentUpdate,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    assignment = await booking_service.update_room_assignment(
        db, assignment_id, payload.model_dump(exclude_unset=True)
    )
    return {"room_assignment": assignment.to_dict()}


@router.delete("/room-assignments/{assignment_id}", status_code=204)
async def remove_room_assignment(
    assignment_id: int,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> None:
    await booking_service.remove_room_assignment(db, assignment_id)
