from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from fastapi import Depends
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hcc_portal.models import (
    Booking,
    BookingSource,
    BookingStatus,
    BookingType,
    DepositStatus,
    Enquiry,
    EnquiryStatus,
    Profile,
    ProfileRole,
    Room,
    RoomAssignment,
    Space,
    SpaceReservation,
    SpaceReservationStatus,
)
from hcc_portal.schemas.forms import BookingForm, collect_errors
from hcc_portal.security.bot_detection import HONEYPOT_FIELDS, validate_bot_detection
from hcc_portal.security.tokens import (
    generate_custom_pricing_token,
    generate_guest_token,
    hash_token,
    mask_token,
    validate_custom_pricing_token,
)
from hcc_portal.services import emails
from hcc_portal.services.conflicts import (
    ReservationSlot,
    RoomConflict,
    SpaceConflict,
    StayWindow,
    conflict_label,
    conflicting_booking_ids,
    detect_room_conflicts,
    detect_space_conflicts,
)
from hcc_portal.services.email_service import EmailService, get_email_service
from hcc_portal.services.errors import BookingServiceError, FormRejected, NotFoundError
from hcc_portal.services.references import commit_with_reference
from hcc_portal.stores.event_bus import EventBus, event_bus
from hcc_portal.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)

INVALID_SUBMISSION = "Invalid submission"
VALIDATION_FAILED = "Validation failed"

LINK_ERRORS = {
    "expired": ("This booking link has expired", 410),
    "already_used": ("This booking link has already been used", 409),
    "invalid_token": ("Invalid booking link", 404),
}


@dataclass
class CustomLinkPayload:
    customer_name: str
    customer_email: str
    organization: Optional[str] = None
    discount_percentage: Optional[Decimal] = None
    custom_pricing_notes: Optional[str] = None
    enquiry_id: Optional[int] = None


@dataclass
class CustomLinkResult:
    booking: Booking
    token: str
    booking_url: str
    expires_at: datetime


@dataclass
class ApprovalResult:
    booking: Booking
    profile: Profile
    portal_token: str
    portal_url: str
    email_sent: bool


def _slot(reservation: SpaceReservation) -> ReservationSlot:
    return ReservationSlot(
        booking_id=reservation.booking_id,
        space_id=reservation.space_id,
        service_date=reservation.service_date,
        start_time=reservation.start_time,
        end_time=reservation.end_time,
        booking_status=reservation.booking.status,
    )


def _stay(assignment: RoomAssignment) -> StayWindow:
    booking = assignment.booking
    return StayWindow(
        booking_id=booking.id,
        room_id=assignment.room_id,
        status=booking.status,
        arrival_date=booking.arrival_date,
        departure_date=booking.departure_date,
        reference=booking.reference,
        customer_name=booking.customer_name,
        contact_name=booking.contact_name,
    )


class BookingService:
    """Booking lifecycle: submissions, custom links, approval, deposits and resources."""

    def __init__(
        self,
        email_service: EmailService | None = None,
        settings: Settings | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self.email_service = email_service or get_email_service()
        self.settings = settings or get_settings()
        self.bus = bus or event_bus

    async def _publish(self, event_type: str, booking: Booking, **extra: Any) -> None:
        await self.bus.publish(
            "bookings",
            {"type": event_type, "booking_id": booking.id, "status": booking.status.value, **extra},
        )

    async def get_booking(self, session: AsyncSession, booking_id: int) -> Booking:
        booking = await session.get(Booking, booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    async def list_bookings(
        self,
        session: AsyncSession,
        status: Optional[BookingStatus] = None,
        limit: int = 100,
    ) -> List[Booking]:
        stmt = select(Booking).order_by(Booking.arrival_date.desc(), Booking.id.desc()).limit(limit)
        if status is not None:
            stmt = stmt.where(Booking.status == status)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    # Public submissions

    def _parse_form(self, body: Mapping[str, Any]) -> BookingForm:
        check = validate_bot_detection(
            body,
            HONEYPOT_FIELDS["booking"],
            minimum_seconds=self.settings.form_minimum_seconds,
        )
        if not check.valid:
            raise FormRejected(INVALID_SUBMISSION)
        try:
            return BookingForm.model_validate(dict(body))
        except ValidationError as error:
            raise FormRejected(VALIDATION_FAILED, collect_errors(error)) from error

    async def submit_booking(self, session: AsyncSession, body: Mapping[str, Any]) -> Booking:
        form = self._parse_form(body)

        booking = Booking(
            source=BookingSource.PORTAL,
            booking_type=form.booking_type,
            customer_name=form.contact_name,
            customer_email=form.contact_email,
            contact_name=form.contact_name,
            contact_phone=form.contact_phone,
            organization=form.organization,
            event_type=form.event_type,
            event_name=form.event_name,
            arrival_date=form.arrival_date,
            departure_date=form.departure_date,
            nights=form.nights,
            headcount=form.headcount,
            minors=form.minors,
            whole_centre=form.whole_centre,
            is_overnight=form.is_overnight,
            catering_required=form.catering_required,
            accommodation_requests=form.accommodation_requests(),
            requested_spaces=list(form.selected_spaces),
            notes=form.notes,
            status=BookingStatus.PENDING,
        )
        await commit_with_reference(session, booking, Booking.reference, "BKG")
        logger.info("booking_submitted", extra={"booking_id": booking.id, "reference": booking.reference})

        await self.email_service.send_safely(emails.booking_submitted(booking))
        await self._publish("booking.submitted", booking)
        return booking

    # Custom pricing links

    def _custom_link_url(self, token: str) -> str:
        return f"{self.settings.public_site_url.rstrip('/')}/booking/custom/{token}"

    async def create_custom_link(self, session: AsyncSession, payload: CustomLinkPayload) -> CustomLinkResult:
        issued = generate_custom_pricing_token(days=self.settings.custom_link_days)
        today = datetime.now(timezone.utc).date()
        discount = payload.discount_percentage or Decimal("0")

        enquiry: Optional[Enquiry] = None
        if payload.enquiry_id is not None:
            enquiry = await session.get(Enquiry, payload.enquiry_id)
            if not enquiry:
                raise NotFoundError("Enquiry not found")

        booking = Booking(
            source=BookingSource.ADMIN_CREATED,
            booking_type=BookingType.GROUP,
            customer_name=payload.customer_name,
            customer_email=payload.customer_email.strip().lower(),
            contact_name=payload.customer_name,
            organization=payload.organization,
            arrival_date=today,
            departure_date=today,
            nights=0,
            headcount=1,
            status=BookingStatus.AWAITING_DETAILS,
            custom_pricing_token_hash=issued.hash,
            custom_pricing_token_expires_at=issued.expires_at,
            custom_pricing_applied=bool(discount),
            discount_percentage=discount,
            custom_pricing_notes=payload.custom_pricing_notes or None,
            enquiry_id=payload.enquiry_id,
        )
        await commit_with_reference(session, booking, Booking.reference, "BKG")

        if enquiry is not None:
            # a reference retry rolls back and expires the enquiry loaded above
            enquiry = await session.get(Enquiry, payload.enquiry_id)
            enquiry.status = EnquiryStatus.CONVERTED_TO_BOOKING
            enquiry.converted_to_booking_id = booking.id
        await session.commit()

        booking_url = self._custom_link_url(issued.token)
        logger.info(
            "custom_link_created",
            extra={"booking_id": booking.id, "token": mask_token(issued.token), "enquiry_id": payload.enquiry_id},
        )
        await self.email_service.send_safely(
            emails.custom_booking_link(booking, booking_url, discount, payload.custom_pricing_notes)
        )
        await self._publish("booking.link_created", booking)
        return CustomLinkResult(booking=booking, token=issued.token, booking_url=booking_url, expires_at=issued.expires_at)

    async def get_custom_booking(self, session: AsyncSession, token: str) -> Booking:
        result = await session.execute(
            select(Booking).where(Booking.custom_pricing_token_hash == hash_token(token))
        )
        booking = result.scalar_one_or_none()
        check = validate_custom_pricing_token(
            token,
            booking.custom_pricing_token_hash if booking else None,
            booking.custom_pricing_token_expires_at if booking else None,
            booking.status if booking else BookingStatus.AWAITING_DETAILS,
        )
        if not check.valid or booking is None:
            message, status = LINK_ERRORS[check.reason or "invalid_token"]
            logger.info("custom_link_rejected", extra={"token": mask_token(token), "reason": check.reason})
            raise FormRejected(message, status_code=status)
        return booking

    async def submit_custom_booking(self, session: AsyncSession, token: str, body: Mapping[str, Any]) -> Booking:
        booking = await self.get_custom_booking(session, token)
        form = self._parse_form(body)

        booking.booking_type = form.booking_type
        booking.contact_phone = form.contact_phone
        booking.event_type = form.event_type
        booking.event_name = form.event_name
        booking.arrival_date = form.arrival_date
        booking.departure_date = form.departure_date
        booking.nights = form.nights
        booking.headcount = form.headcount
        booking.minors = form.minors
        booking.whole_centre = form.whole_centre
        booking.is_overnight = form.is_overnight
        booking.catering_required = form.catering_required
        booking.accommodation_requests = form.accommodation_requests()
        booking.requested_spaces = list(form.selected_spaces)
        booking.notes = form.notes
        booking.status = BookingStatus.PENDING
        # the link is single use
        booking.custom_pricing_token_hash = None
        booking.custom_pricing_token_expires_at = None
        await session.commit()

        logger.info("custom_booking_submitted", extra={"booking_id": booking.id, "reference": booking.reference})
        await self._publish("booking.submitted", booking)
        return booking

    # Admin lifecycle

    def _portal_url(self, booking: Booking, token: str) -> str:
        return f"{self.settings.public_site_url.rstrip('/')}/portal/{booking.reference}?token={token}"

    async def _ensure_customer_profile(self, session: AsyncSession, booking: Booking, email: str) -> Profile:
        result = await session.execute(select(Profile).where(Profile.email == email))
        profile = result.scalar_one_or_none()
        full_name = (
            (booking.customer_name or "").strip()
            or (booking.contact_name or "").strip()
            or (profile.full_name if profile else None)
            or email.split("@")[0]
        )
        if profile is None:
            profile = Profile(email=email, role=ProfileRole.CUSTOMER)
            session.add(profile)
        profile.full_name = full_name
        profile.booking_reference = booking.reference
        await session.flush()
        return profile

    async def approve_booking(self, session: AsyncSession, booking_id: int) -> ApprovalResult:
        booking = await session.get(Booking, booking_id)
        if not booking:
            raise BookingServiceError("Booking not found.", 404)
        if not booking.customer_email or not booking.customer_email.strip():
            raise BookingServiceError("A valid customer email address is required for approval.", 400)
        if not booking.reference:
            raise BookingServiceError("A booking reference is required before approval.", 400)

        email = booking.customer_email.strip().lower()
        profile = await self._ensure_customer_profile(session, booking, email)
        issued = generate_guest_token()

        booking.customer_profile_id = profile.id
        booking.guest_token_hash = issued.hash
        booking.status = BookingStatus.APPROVED
        await session.commit()
        logger.info("booking_approved", extra={"booking_id": booking.id, "profile_id": profile.id})

        portal_url = self._portal_url(booking, issued.token)
        email_sent = await self.email_service.send_safely(emails.booking_approved(booking, portal_url))
        await self._publish("booking.approved", booking)
        return ApprovalResult(
            booking=booking,
            profile=profile,
            portal_token=issued.token,
            portal_url=portal_url,
            email_sent=email_sent,
        )

    async def record_deposit(
        self,
        session: AsyncSession,
        booking_id: int,
        amount: Optional[Decimal] = None,
        reference: Optional[str] = None,
    ) -> Booking:
        booking = await self.get_booking(session, booking_id)
        if booking.status == BookingStatus.CANCELLED:
            raise BookingServiceError("Cannot record a deposit on a cancelled booking.", 409)
        booking.status = BookingStatus.CONFIRMED
        booking.deposit_status = DepositStatus.PAID
        booking.deposit_received_at = datetime.now(timezone.utc)
        if amount is not None:
            booking.deposit_amount = amount
        if reference:
            booking.deposit_reference = reference
        await session.commit()
        logger.info("deposit_recorded", extra={"booking_id": booking.id, "amount": str(amount)})
        await self._publish("booking.deposit_recorded", booking)
        return booking

    async def update_status(
        self,
        session: AsyncSession,
        booking_id: int,
        status: BookingStatus,
        cancel_reason: Optional[str] = None,
        admin_notes: Optional[str] = None,
    ) -> Booking:
        booking = await self.get_booking(session, booking_id)
        previous = booking.status
        booking.status = status
        if status == BookingStatus.CANCELLED:
            booking.cancel_reason = cancel_reason
        if admin_notes is not None:
            booking.admin_notes = admin_notes
        await session.commit()
        logger.info(
            "booking_status_updated",
            extra={"booking_id": booking.id, "from": previous.value, "to": status.value},
        )
        await self._publish("booking.status_changed", booking, previous=previous.value)
        return booking

    # Conflicts

    async def _space_names(self, session: AsyncSession) -> Dict[str, str]:
        result = await session.execute(select(Space.id, Space.name))
        return {space_id: name for space_id, name in result.all()}

    async def _summaries(self, session: AsyncSession, booking_ids: Sequence[int]) -> Dict[int, Booking]:
        if not booking_ids:
            return {}
        result = await session.execute(select(Booking).where(Booking.id.in_(booking_ids)))
        return {booking.id: booking for booking in result.scalars().all()}

    async def get_booking_conflicts(self, session: AsyncSession, booking_id: int) -> Dict[str, Any]:
        booking = await self.get_booking(session, booking_id)

        mine = await session.execute(select(SpaceReservation).where(SpaceReservation.booking_id == booking.id))
        others = await session.execute(
            select(SpaceReservation)
            .join(Booking, SpaceReservation.booking_id == Booking.id)
            .where(
                SpaceReservation.booking_id != booking.id,
                SpaceReservation.service_date >= booking.arrival_date,
                SpaceReservation.service_date <= booking.departure_date,
                Booking.status != BookingStatus.CANCELLED,
            )
        )
        space_conflicts = detect_space_conflicts(
            booking.id,
            booking.status,
            [_slot(item) for item in mine.scalars().unique().all()],
            [_slot(item) for item in others.scalars().unique().all()],
        )
        conflicting = await self._summaries(session, conflicting_booking_ids(space_conflicts))

        assignments = await session.execute(
            select(RoomAssignment).where(RoomAssignment.booking_id != booking.id)
        )
        room_conflicts = detect_room_conflicts(
            booking.arrival_date,
            booking.departure_date,
            [_stay(item) for item in assignments.scalars().unique().all()],
        )

        return {
            "booking_id": booking.id,
            "space_conflicts": [
                {
                    **conflict.to_dict(),
                    "conflicting_booking": conflicting[conflict.conflicts_with].summary()
                    if conflict.conflicts_with in conflicting
                    else None,
                }
                for conflict in space_conflicts
            ],
            "room_conflicts": [conflict.to_dict() for conflict in room_conflicts],
            "conflicting_bookings": _dedupe_room_bookings(room_conflicts),
        }

    async def list_bookings_with_conflicts(
        self,
        session: AsyncSession,
        status: Optional[BookingStatus] = None,
    ) -> List[Dict[str, Any]]:
        bookings = await self.list_bookings(session, status=status, limit=500)
        result = await session.execute(
            select(SpaceReservation)
            .join(Booking, SpaceReservation.booking_id == Booking.id)
            .where(Booking.status != BookingStatus.CANCELLED)
        )
        slots = [_slot(item) for item in result.scalars().unique().all()]
        by_booking: Dict[int, List[ReservationSlot]] = {}
        for slot in slots:
            by_booking.setdefault(slot.booking_id, []).append(slot)

        space_names = await self._space_names(session)
        references = {booking.id: booking.reference for booking in bookings}
        missing = {slot.booking_id for slot in slots} - set(references)
        for other in (await self._summaries(session, sorted(missing))).values():
            references[other.id] = other.reference

        rows: List[Dict[str, Any]] = []
        for booking in bookings:
            mine = by_booking.get(booking.id, [])
            conflicts: List[SpaceConflict] = []
            if booking.status != BookingStatus.CANCELLED and mine:
                conflicts = detect_space_conflicts(booking.id, booking.status, mine, slots)
            rows.append(
                {
                    **booking.to_dict(),
                    "spaces": sorted({space_names.get(slot.space_id, slot.space_id) for slot in mine}),
                    "conflicts": [conflict_label(item, space_names, references) for item in conflicts],
                }
            )
        return rows

    # Spaces

    async def list_space_reservations(self, session: AsyncSession, booking_id: int) -> List[SpaceReservation]:
        await self.get_booking(session, booking_id)
        result = await session.execute(
            select(SpaceReservation)
            .where(SpaceReservation.booking_id == booking_id)
            .order_by(SpaceReservation.service_date, SpaceReservation.start_time)
        )
        return list(result.scalars().unique().all())

    async def reserve_space(
        self,
        session: AsyncSession,
        booking_id: int,
        space_id: str,
        service_date: date,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
        status: SpaceReservationStatus = SpaceReservationStatus.HELD,
    ) -> SpaceReservation:
        booking = await self.get_booking(session, booking_id)
        if not await session.get(Space, space_id):
            raise NotFoundError("Space not found")
        _check_window(start_time, end_time)
        if not booking.arrival_date <= service_date <= booking.departure_date:
            raise BookingServiceError("Reservation date must fall within the booking's stay.", 400)

        reservation = SpaceReservation(
            booking_id=booking.id,
            space_id=space_id,
            service_date=service_date,
            start_time=start_time,
            end_time=end_time,
            status=status,
        )
        session.add(reservation)
        await session.commit()
        await session.refresh(reservation, attribute_names=["booking"])
        await self._publish("space.reserved", booking, space_id=space_id, service_date=service_date.isoformat())
        return reservation

    async def move_space_reservation(
        self,
        session: AsyncSession,
        reservation_id: int,
        changes: Mapping[str, Any],
    ) -> SpaceReservation:
        reservation = await session.get(SpaceReservation, reservation_id)
        if not reservation:
            raise NotFoundError("Space reservation not found")
        if "space_id" in changes and changes["space_id"] and not await session.get(Space, changes["space_id"]):
            raise NotFoundError("Space not found")

        for field in ("space_id", "service_date", "start_time", "end_time", "status"):
            if field in changes and (changes[field] is not None or field in ("start_time", "end_time")):
                setattr(reservation, field, changes[field])
        _check_window(reservation.start_time, reservation.end_time)
        await session.commit()
        await self._publish("space.moved", reservation.booking, reservation_id=reservation.id)
        return reservation

    async def remove_space_reservation(self, session: AsyncSession, reservation_id: int) -> None:
        reservation = await session.get(SpaceReservation, reservation_id)
        if not reservation:
            raise NotFoundError("Space reservation not found")
        booking = reservation.booking
        await session.delete(reservation)
        await session.commit()
        await self._publish("space.released", booking, reservation_id=reservation_id)

    # Rooms

    async def list_room_assignments(self, session: AsyncSession, booking_id: int) -> List[RoomAssignment]:
        await self.get_booking(session, booking_id)
        result = await session.execute(
            select(RoomAssignment).where(RoomAssignment.booking_id == booking_id).order_by(RoomAssignment.room_id)
        )
        return list(result.scalars().unique().all())

    async def assign_room(
        self,
        session: AsyncSession,
        booking_id: int,
        room_id: str,
        guest_names: Iterable[str] = (),
        extra_bed_selected: bool = False,
        ensuite_selected: bool = False,
        private_study_selected: bool = False,
    ) -> RoomAssignment:
        booking = await self.get_booking(session, booking_id)
        room = await session.get(Room, room_id)
        if not room or not room.active:
            raise NotFoundError("Room not found")
        if extra_bed_selected and not room.extra_bed_allowed:
            raise BookingServiceError("This room does not allow an extra bed.", 400)

        existing = await session.execute(
            select(RoomAssignment).where(RoomAssignment.booking_id == booking.id, RoomAssignment.room_id == room_id)
        )
        if existing.scalar_one_or_none():
            raise BookingServiceError("Room is already assigned to this booking.", 409)

        assignment = RoomAssignment(
            booking_id=booking.id,
            room_id=room_id,
            guest_names=[name.strip() for name in guest_names if name and name.strip()],
            extra_bed_selected=extra_bed_selected,
            ensuite_selected=ensuite_selected,
            private_study_selected=private_study_selected,
        )
        session.add(assignment)
        await session.commit()
        await session.refresh(assignment, attribute_names=["booking"])
        await self._publish("room.assigned", booking, room_id=room_id)
        return assignment

    async def update_room_assignment(
        self,
        session: AsyncSession,
        assignment_id: int,
        changes: Mapping[str, Any],
    ) -> RoomAssignment:
        assignment = await session.get(RoomAssignment, assignment_id)
        if not assignment:
            raise NotFoundError("Room assignment not found")
        if changes.get("guest_names") is not None:
            assignment.guest_names = [name.strip() for name in changes["guest_names"] if name and name.strip()]
        for flag in ("extra_bed_selected", "ensuite_selected", "private_study_selected"):
            if changes.get(flag) is not None:
                setattr(assignment, flag, bool(changes[flag]))
        await session.commit()
        await self._publish("room.assignment_updated", assignment.booking, room_id=assignment.room_id)
        return assignment

    async def remove_room_assignment(self, session: AsyncSession, assignment_id: int) -> None:
        assignment = await session.get(RoomAssignment, assignment_id)
        if not assignment:
            raise NotFoundError("Room assignment not found")
        booking, room_id = assignment.booking, assignment.room_id
        await session.delete(assignment)
        await session.commit()
        await self._publish("room.unassigned", booking, room_id=room_id)


def _check_window(start_time: Optional[time], end_time: Optional[time]) -> None:
    if start_time and end_time and end_time <= start_time:
        raise BookingServiceError("End time must be after start time.", 400)


def _dedupe_room_bookings(conflicts: Iterable[RoomConflict]) -> List[Dict[str, Any]]:
    seen: Dict[int, Dict[str, Any]] = {}
    for conflict in conflicts:
        seen.setdefault(conflict.conflicts_with, conflict.conflicting_booking)
    return list(seen.values())


def get_booking_service(email_service: EmailService = Depends(get_email_service)) -> BookingService:
    return BookingService(email_service=email_service)
