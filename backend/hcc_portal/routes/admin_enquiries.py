from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from hcc_portal.db.database import get_session
from hcc_portal.models import EnquiryStatus, NoteType, Profile
from hcc_portal.security.auth import require_admin
from hcc_portal.services.booking_service import CustomLinkPayload
from hcc_portal.services.enquiry_service import EnquiryService, get_enquiry_service


class EnquiryStatusUpdate(BaseModel):
    status: EnquiryStatus


class NoteRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    note_type: NoteType = NoteType.NOTE


class QuoteRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    description: Optional[str] = None
    notes: Optional[str] = None
    reason_for_change: Optional[str] = None


class LostRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class ConvertRequest(BaseModel):
    customer_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    customer_email: Optional[EmailStr] = None
    organization: Optional[str] = None
    discount_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)
    custom_pricing_notes: Optional[str] = None


router = APIRouter(prefix="/admin/enquiries", tags=["enquiries"], dependencies=[Depends(require_admin)])


@router.get("")
async def list_enquiries(
    status: Optional[EnquiryStatus] = None,
    limit: int = 100,
    db: AsyncSession = Depends(get_session),
    enquiry_service: EnquiryService = Depends(get_enquiry_service),
) -> Dict[str, Any]:
    enquiries = await enquiry_service.list_enquiries(db, status=status, limit=limit)
    return {"enquiries": [enquiry.to_dict() for enquiry in enquiries]}


@router.get("/{enquiry_id}")
async def get_enquiry(
    enquiry_id: int,
    db: AsyncSession = Depends(get_session),
    enquiry_service: EnquiryService = Depends(get_enquiry_service),
) -> Dict[str, Any]:
    return await enquiry_service.get_detail(db, enquiry_id)


@router.patch("/{enquiry_id}/status")
async def update_status(
    enquiry_id: int,
    payload: EnquiryStatusUpdate,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    enquiry_service: EnquiryService = Depends(get_enquiry_service),
) -> Dict[str, Any]:
    enquiry = await enquiry_service.update_status(db, enquiry_id, payload.status, admin)
    return {"success": True, "enquiry": enquiry.to_dict()}


@router.post("/{enquiry_id}/notes", status_code=201)
async def add_note(
    enquiry_id: int,
    payload: NoteRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    enquiry_service: EnquiryService = Depends(get_enquiry_service),
) -> Dict[str, Any]:
    note = await enquiry_service.add_note(db, enquiry_id, payload.content, admin, payload.note_type)
    return {"success": True, "note": note.to_dict()}


@router.post("/{enquiry_id}/quotes", status_code=201)
async def create_quote(
    enquiry_id: int,
    payload: QuoteRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    enquiry_service: EnquiryService = Depends(get_enquiry_service),
) -> Dict[str, Any]:
    quote = await enquiry_service.create_quote(
        db,
        enquiry_id,
        payload.amount,
        admin,
        description=payload.description,
        notes=payload.notes,
        reason_for_change=payload.reason_for_change,
    )
    return {"success": True, "quote": quote.to_dict()}


@router.post("/{enquiry_id}/quotes/{quote_id}/accept")
async def accept_quote(
    enquiry_id: int,
    quote_id: int,
    db: AsyncSession = Depends(get_session),
    enquiry_service: EnquiryService = Depends(get_enquiry_service),
) -> Dict[str, Any]:
    quote = await enquiry_service.accept_quote(db, enquiry_id, quote_id)
    return {"success": True, "quote": quote.to_dict()}


@router.post("/{enquiry_id}/lost")
async def mark_lost(
    enquiry_id: int,
    payload: LostRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    enquiry_service: EnquiryService = Depends(get_enquiry_service),
) -> Dict[str, Any]:
    enquiry = await enquiry_service.mark_lost(db, enquiry_id, payload.reason, admin)
    return {"success": True, "enquiry": enquiry.to_dict()}


@router.post("/{enquiry_id}/convert", status_code=201)
async def convert_to_booking(
    enquiry_id: int,
    payload: ConvertRequest,
    db: AsyncSession = Depends(get_session),
    enquiry_service: EnquiryService = Depends(get_enquiry_service),
) -> Dict[str, Any]:
    enquiry = await enquiry_service.get_enquiry(db, enquiry_id)
    result = await enquiry_service.convert_to_booking(
        db,
        enquiry_id,
        CustomLinkPayload(
            customer_name=payload.customer_name or enquiry.customer_name,
            customer_email=str(payload.customer_email or enquiry.customer_email),
            organization=payload.organization or enquiry.organization,
            discount_percentage=payload.discount_percentage,
            custom_pricing_notes=payload.custom_pricing_notes,
        ),
    )
    return {
        "success": True,
        "booking_id": result.booking.id,
        "reference": result.booking.reference,
        "booking_url": result.booking_url,
        "expires_at": result.expires_at.isoformat(),
    }
