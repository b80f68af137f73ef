from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from fastapi import Depends
from pydantic import ValidationError
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hcc_portal.models import Enquiry, EnquiryNote, EnquiryQuote, EnquiryStatus, NoteType, Profile
from hcc_portal.schemas.forms import EnquiryForm, collect_errors
from hcc_portal.security.bot_detection import HONEYPOT_FIELDS, submission_seconds, validate_bot_detection
from hcc_portal.services import emails
from hcc_portal.services.booking_service import BookingService, CustomLinkPayload, CustomLinkResult
from hcc_portal.services.email_service import EmailService, get_email_service
from hcc_portal.services.errors import FormRejected, NotFoundError, ServiceError
from hcc_portal.services.references import commit_with_reference
from hcc_portal.stores.event_bus import EventBus, event_bus
from hcc_portal.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)

QUOTE_LOCKED_STATUSES = frozenset({EnquiryStatus.QUOTED, EnquiryStatus.CONVERTED_TO_BOOKING})


class EnquiryService:
    """Pre-booking pipeline: public enquiries, notes, versioned quotes and conversion."""

    def __init__(
        self,
        email_service: EmailService | None = None,
        booking_service: BookingService | None = None,
        settings: Settings | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self.email_service = email_service or get_email_service()
        self.settings = settings or get_settings()
        self.bus = bus or event_bus
        self.booking_service = booking_service or BookingService(
            email_service=self.email_service, settings=self.settings, bus=self.bus
        )

    async def _publish(self, event_type: str, enquiry: Enquiry, **extra: Any) -> None:
        await self.bus.publish(
            "enquiries",
            {"type": event_type, "enquiry_id": enquiry.id, "status": enquiry.status.value, **extra},
        )

    async def submit_enquiry(
        self,
        session: AsyncSession,
        body: Mapping[str, Any],
        client_ip: Optional[str] = None,
    ) -> Enquiry:
        check = validate_bot_detection(
            body,
            HONEYPOT_FIELDS["enquiry"],
            minimum_seconds=self.settings.form_minimum_seconds,
        )
        if not check.valid:
            raise FormRejected("Invalid submission")
        try:
            form = EnquiryForm.model_validate(dict(body))
        except ValidationError as error:
            raise FormRejected("Validation failed", collect_errors(error)) from error

        enquiry = Enquiry(
            customer_name=form.customer_name,
            customer_email=str(form.customer_email),
            customer_phone=form.customer_phone,
            organization=form.organization,
            event_type=form.event_type,
            approximate_start_date=form.approximate_start_date,
            approximate_end_date=form.approximate_end_date,
            estimated_guests=form.estimated_guests,
            message=form.message,
            status=EnquiryStatus.NEW,
            submitted_from_ip=client_ip,
            submission_duration_seconds=submission_seconds(body),
        )
        await commit_with_reference(session, enquiry, Enquiry.reference_number, "ENQ")
        logger.info("enquiry_submitted", extra={"enquiry_id": enquiry.id, "reference": enquiry.reference_number})

        await self.email_service.send_safely(emails.enquiry_received(enquiry))
        if self.settings.admin_notification_email:
            await self.email_service.send_safely(
                emails.admin_new_enquiry(enquiry, self.settings.admin_notification_email, self.settings.public_site_url)
            )
        await self._publish("enquiry.submitted", enquiry)
        return enquiry

    async def get_enquiry(self, session: AsyncSession, enquiry_id: int) -> Enquiry:
        enquiry = await session.get(Enquiry, enquiry_id)
        if not enquiry:
            raise NotFoundError("Enquiry not found")
        return enquiry

    async def list_enquiries(
        self,
        session: AsyncSession,
        status: Optional[EnquiryStatus] = None,
        limit: int = 100,
    ) -> List[Enquiry]:
        stmt = select(Enquiry).order_by(Enquiry.created_at.desc(), Enquiry.id.desc()).limit(limit)
        if status is not None:
            stmt = stmt.where(Enquiry.status == status)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def get_detail(self, session: AsyncSession, enquiry_id: int) -> Dict[str, Any]:
        enquiry = await self.get_enquiry(session, enquiry_id)
        notes = await session.execute(
            select(EnquiryNote).where(EnquiryNote.enquiry_id == enquiry.id).order_by(EnquiryNote.created_at.desc(), EnquiryNote.id.desc())
        )
        quotes = await session.execute(
            select(EnquiryQuote).where(EnquiryQuote.enquiry_id == enquiry.id).order_by(EnquiryQuote.version_number.desc())
        )
        return {
            "enquiry": enquiry.to_dict(),
            "notes": [note.to_dict() for note in notes.scalars().all()],
            "quotes": [quote.to_dict() for quote in quotes.scalars().all()],
        }

    def _note(
        self,
        enquiry: Enquiry,
        actor: Profile,
        content: str,
        note_type: NoteType = NoteType.NOTE,
        extras: Optional[Dict[str, Any]] = None,
    ) -> EnquiryNote:
        return EnquiryNote(
            enquiry_id=enquiry.id,
            author_id=actor.id,
            author_name=actor.author_name,
            note_type=note_type,
            content=content,
            extras=extras or {},
        )

    async def update_status(
        self,
        session: AsyncSession,
        enquiry_id: int,
        status: EnquiryStatus,
        actor: Profile,
    ) -> Enquiry:
        enquiry = await self.get_enquiry(session, enquiry_id)
        previous = enquiry.status
        enquiry.status = status
        session.add(
            self._note(
                enquiry,
                actor,
                f"Status changed to {status.value}",
                NoteType.STATUS_CHANGE,
                {"from_status": previous.value, "to_status": status.value},
            )
        )
        await session.commit()
        logger.info(
            "enquiry_status_updated",
            extra={"enquiry_id": enquiry.id, "from": previous.value, "to": status.value},
        )
        await self._publish("enquiry.status_changed", enquiry, previous=previous.value)
        return enquiry

    async def add_note(
        self,
        session: AsyncSession,
        enquiry_id: int,
        content: str,
        actor: Profile,
        note_type: NoteType = NoteType.NOTE,
    ) -> EnquiryNote:
        enquiry = await self.get_enquiry(session, enquiry_id)
        note = self._note(enquiry, actor, content, note_type)
        session.add(note)
        await session.commit()
        return note

    async def create_quote(
        self,
        session: AsyncSession,
        enquiry_id: int,
        amount: Decimal,
        actor: Profile,
        description: Optional[str] = None,
        notes: Optional[str] = None,
        reason_for_change: Optional[str] = None,
    ) -> EnquiryQuote:
        enquiry = await self.get_enquiry(session, enquiry_id)
        latest = await session.execute(
            select(func.max(EnquiryQuote.version_number)).where(EnquiryQuote.enquiry_id == enquiry.id)
        )
        version = (latest.scalar() or 0) + 1

        quote = EnquiryQuote(
            enquiry_id=enquiry.id,
            version_number=version,
            amount=amount,
            description=description or None,
            notes=notes or None,
            reason_for_change=reason_for_change or None,
            created_by=actor.id,
            created_by_name=actor.author_name,
        )
        session.add(quote)
        enquiry.quoted_amount = amount

        if enquiry.status not in QUOTE_LOCKED_STATUSES:
            previous = enquiry.status
            enquiry.status = EnquiryStatus.QUOTED
            session.add(
                self._note(
                    enquiry,
                    actor,
                    f"Status changed to {EnquiryStatus.QUOTED.value}",
                    NoteType.STATUS_CHANGE,
                    {"from_status": previous.value, "to_status": EnquiryStatus.QUOTED.value},
                )
            )
        session.add(
            self._note(
                enquiry,
                actor,
                f"Quote v{version} created: ${amount:.2f}",
                NoteType.QUOTE_CREATED,
                {"version": version, "amount": str(amount)},
            )
        )
        await session.commit()
        logger.info("quote_created", extra={"enquiry_id": enquiry.id, "version": version})
        await self._publish("enquiry.quoted", enquiry, version=version)
        return quote

    async def accept_quote(self, session: AsyncSession, enquiry_id: int, quote_id: int) -> EnquiryQuote:
        enquiry = await self.get_enquiry(session, enquiry_id)
        quote = await session.get(EnquiryQuote, quote_id)
        if not quote or quote.enquiry_id != enquiry.id:
            raise NotFoundError("Quote not found")

        await session.execute(
            update(EnquiryQuote)
            .where(EnquiryQuote.enquiry_id == enquiry.id, EnquiryQuote.id != quote.id)
            .values(is_accepted=False)
        )
        quote.is_accepted = True
        enquiry.quoted_amount = quote.amount
        await session.commit()
        return quote

    async def mark_lost(self, session: AsyncSession, enquiry_id: int, reason: str, actor: Profile) -> Enquiry:
        enquiry = await self.get_enquiry(session, enquiry_id)
        if enquiry.status == EnquiryStatus.CONVERTED_TO_BOOKING:
            raise ServiceError("A converted enquiry cannot be marked as lost.", 409)
        previous = enquiry.status
        enquiry.status = EnquiryStatus.LOST
        enquiry.lost_reason = reason
        session.add(
            self._note(
                enquiry,
                actor,
                f"Marked as lost: {reason}",
                NoteType.STATUS_CHANGE,
                {"from_status": previous.value, "to_status": EnquiryStatus.LOST.value, "lost_reason": reason},
            )
        )
        await session.commit()
        await self._publish("enquiry.lost", enquiry)
        return enquiry

    async def convert_to_booking(
        self,
        session: AsyncSession,
        enquiry_id: int,
        payload: CustomLinkPayload,
    ) -> CustomLinkResult:
        enquiry = await self.get_enquiry(session, enquiry_id)
        if enquiry.status == EnquiryStatus.CONVERTED_TO_BOOKING:
            raise ServiceError("Enquiry has already been converted to a booking.", 409)
        payload.enquiry_id = enquiry.id
        result = await self.booking_service.create_custom_link(session, payload)
        await self._publish("enquiry.converted", enquiry, booking_id=result.booking.id)
        return result


def get_enquiry_service(email_service: EmailService = Depends(get_email_service)) -> EnquiryService:
    return EnquiryService(email_service=email_service)
