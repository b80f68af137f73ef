from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from hcc_portal.db.database import get_session
from hcc_portal.security.csrf import generate_csrf_token, require_csrf, set_csrf_cookie
from hcc_portal.security.rate_limit import client_id, rate_limit
from hcc_portal.services.booking_service import BookingService, get_booking_service
from hcc_portal.services.enquiry_service import EnquiryService, get_enquiry_service
from hcc_portal.utils.config import Settings, get_settings

csrf_router = APIRouter(tags=["public"])
router = APIRouter(prefix="/public", tags=["public"])


@csrf_router.get("/csrf-token")
def issue_csrf_token(response: Response, settings: Settings = Depends(get_settings)) -> Dict[str, str]:
    token = generate_csrf_token()
    set_csrf_cookie(response, token, secure=settings.csrf_cookie_secure)
    return {"csrf_token": token}


@router.post(
    "/enquiries",
    status_code=201,
    dependencies=[Depends(rate_limit("enquiry")), Depends(require_csrf)],
)
async def submit_enquiry(
    request: Request,
    body: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_session),
    enquiry_service: EnquiryService = Depends(get_enquiry_service),
) -> Dict[str, Any]:
    enquiry = await enquiry_service.submit_enquiry(db, body, client_ip=client_id(request))
    return {
        "success": True,
        "enquiry_id": enquiry.id,
        "reference": enquiry.reference_number,
        "message": "Thank you for your enquiry. We will be in touch shortly.",
    }


@router.post(
    "/bookings",
    status_code=201,
    dependencies=[Depends(rate_limit("booking")), Depends(require_csrf)],
)
async def submit_booking(
    body: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    booking = await booking_service.submit_booking(db, body)
    return {"success": True, "booking_id": booking.id, "reference": booking.reference}


@router.get("/bookings/custom/{token}")
async def get_custom_booking(
    token: str,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    booking = await booking_service.get_custom_booking(db, token)
    expires_at = booking.custom_pricing_token_expires_at
    return {
        "success": True,
        "booking": {
            "reference": booking.reference,
            "customer_name": booking.customer_name,
            "customer_email": booking.customer_email,
            "organization": booking.organization,
            "discount_percentage": str(booking.discount_percentage),
            "custom_pricing_notes": booking.custom_pricing_notes,
            "expires_at": expires_at.isoformat() if expires_at else None,
        },
    }


@router.post(
    "/bookings/custom/{token}",
    dependencies=[Depends(rate_limit("custom_booking")), Depends(require_csrf)],
)
async def submit_custom_booking(
    token: str,
    body: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    booking = await booking_service.submit_custom_booking(db, token, body)
    return {"success": True, "booking_id": booking.id, "reference": booking.reference}
