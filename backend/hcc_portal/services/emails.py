from __future__ import annotations

from decimal import Decimal
from typing import Optional

from hcc_portal.models import Booking, Enquiry
from hcc_portal.services.email_service import EmailMessage


def enquiry_received(enquiry: Enquiry) -> EmailMessage:
    text = (
        f"Dear {enquiry.customer_name},\n\n"
        f"Thank you for your enquiry about a {enquiry.event_type.lower()} at the Holy Cross Centre. "
        f"Your reference number is {enquiry.reference_number}.\n\n"
        "Our team will review your request and be in touch within two business days.\n"
    )
    return EmailMessage(
        to=[enquiry.customer_email],
        subject=f"Enquiry Received: {enquiry.reference_number}",
        text=text,
        tags={"category": "enquiry_received"},
    )


def admin_new_enquiry(enquiry: Enquiry, admin_email: str, site_url: str) -> EmailMessage:
    lines = [
        f"Reference: {enquiry.reference_number}",
        f"Name: {enquiry.customer_name}",
        f"Email: {enquiry.customer_email}",
        f"Phone: {enquiry.customer_phone or '-'}",
        f"Organisation: {enquiry.organization or '-'}",
        f"Event type: {enquiry.event_type}",
        f"Preferred dates: {enquiry.preferred_dates or 'Not specified'}",
        f"Estimated guests: {enquiry.estimated_guests or '-'}",
        "",
        enquiry.message,
        "",
        f"Open in admin: {site_url.rstrip('/')}/admin/enquiries/{enquiry.id}",
    ]
    return EmailMessage(
        to=[admin_email],
        subject=f"New Enquiry: {enquiry.reference_number} from {enquiry.customer_name}",
        text="\n".join(lines),
        tags={"category": "admin_new_enquiry"},
    )


def booking_submitted(booking: Booking) -> EmailMessage:
    text = (
        f"Dear {booking.guest_label},\n\n"
        f"We have received your booking request for {booking.arrival_date.isoformat()} "
        f"to {booking.departure_date.isoformat()} for {booking.headcount} guests.\n"
        f"Reference: {booking.reference or 'Pending'}\n\n"
        "Your booking is pending review. We will email you once it has been approved.\n"
    )
    return EmailMessage(
        to=[booking.customer_email or ""],
        subject=f"Booking Request Received: {booking.reference or 'Pending'}",
        text=text,
        tags={"category": "booking_submitted"},
    )


def custom_booking_link(
    booking: Booking,
    booking_url: str,
    discount_percentage: Optional[Decimal] = None,
    pricing_notes: Optional[str] = None,
) -> EmailMessage:
    lines = [
        f"Dear {booking.guest_label},",
        "",
        "We have prepared a personal booking link for your stay at the Holy Cross Centre.",
        f"Complete your booking here: {booking_url}",
        "",
        "This link is valid for 30 days and can be used once.",
    ]
    if discount_percentage:
        lines.append(f"A discount of {discount_percentage}% has been applied.")
    if pricing_notes:
        lines.append(pricing_notes)
    return EmailMessage(
        to=[booking.customer_email or ""],
        subject="Your Personal Booking Link - Holy Cross Centre",
        text="\n".join(lines),
        tags={"category": "custom_booking_link"},
    )


def booking_approved(booking: Booking, portal_url: str) -> EmailMessage:
    text = (
        f"Dear {booking.guest_label},\n\n"
        f"Your booking {booking.reference or booking.id} for {booking.arrival_date.isoformat()} "
        f"to {booking.departure_date.isoformat()} has been approved.\n\n"
        f"Manage your rooming list and dietary requirements in the guest portal:\n{portal_url}\n"
    )
    return EmailMessage(
        to=[booking.customer_email or ""],
        subject=f"Booking Confirmed: {booking.reference or booking.id}",
        text=text,
        tags={"category": "booking_approved"},
    )
