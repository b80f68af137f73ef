from __future__ import annotations

from datetime import date
from typing import Annotated, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, ValidationError, ValidationInfo, field_validator

from hcc_portal.models.booking import BookingType
from hcc_portal.models.catering import MealType

EVENT_TYPES = (
    "Retreat",
    "Conference",
    "Wedding",
    "School",
    "Young Adults",
    "Training",
    "Silent Retreat",
    "Other",
)

EventType = Literal[
    "Retreat",
    "Conference",
    "Wedding",
    "School",
    "Young Adults",
    "Training",
    "Silent Retreat",
    "Other",
]

PersonName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _lower_email(value: object) -> object:
    if isinstance(value, str):
        return value.strip().lower()
    return value


class FormModel(BaseModel):
    # honeypot, time token and CSRF fields travel with the form body
    model_config = ConfigDict(extra="ignore")


class EnquiryForm(FormModel):
    customer_name: PersonName
    customer_email: EmailStr
    customer_phone: Optional[str] = None
    organization: Optional[Annotated[str, StringConstraints(max_length=200)]] = None
    event_type: EventType
    approximate_start_date: Optional[date] = None
    approximate_end_date: Optional[date] = None
    estimated_guests: Optional[int] = Field(None, ge=1, le=200)
    message: Annotated[str, StringConstraints(strip_whitespace=True, min_length=10, max_length=2000)]

    blank_to_none = field_validator(
        "customer_phone",
        "organization",
        "approximate_start_date",
        "approximate_end_date",
        mode="before",
    )(_blank_to_none)
    lower_email = field_validator("customer_email", mode="before")(_lower_email)


class RoomRequest(BaseModel):
    room_type_id: str
    quantity: int = Field(..., ge=1)
    byo_linen: bool = False


class MealRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    meal_type: MealType
    service_date: date = Field(..., alias="date")
    headcount: int = Field(..., ge=1)


class BookingForm(FormModel):
    booking_type: BookingType = BookingType.GROUP
    organization: Optional[str] = None
    contact_name: PersonName
    contact_email: EmailStr
    contact_phone: Annotated[str, StringConstraints(strip_whitespace=True, min_length=6)]
    event_type: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    event_name: Optional[str] = None
    arrival_date: date
    departure_date: date
    headcount: int = Field(..., ge=1, le=200)
    minors: bool = False
    whole_centre: bool = False
    selected_spaces: List[str] = Field(default_factory=list)
    is_overnight: bool = False
    rooms: List[RoomRequest] = Field(default_factory=list)
    catering_required: bool = False
    meals: List[MealRequest] = Field(default_factory=list)
    percolated_coffee_quantity: Optional[int] = Field(None, ge=0)
    notes: Optional[Annotated[str, StringConstraints(max_length=2000)]] = None
    terms_accepted: bool

    blank_to_none = field_validator("organization", "event_name", "notes", mode="before")(_blank_to_none)
    lower_email = field_validator("contact_email", mode="before")(_lower_email)

    @field_validator("terms_accepted")
    @classmethod
    def _terms(cls, value: bool) -> bool:
        if value is not True:
            raise ValueError("You must accept the terms and conditions")
        return value

    @field_validator("departure_date")
    @classmethod
    def _departure_after_arrival(cls, value: date, info: ValidationInfo) -> date:
        arrival = info.data.get("arrival_date")
        if arrival and value < arrival:
            raise ValueError("Departure date must be on or after the arrival date")
        return value

    @property
    def nights(self) -> int:
        return (self.departure_date - self.arrival_date).days

    def accommodation_requests(self) -> Dict[str, object]:
        requests: Dict[str, object] = {
            "rooms": [room.model_dump() for room in self.rooms],
            "byo_linen": any(room.byo_linen for room in self.rooms),
        }
        if self.meals:
            requests["meals"] = [meal.model_dump(mode="json", by_alias=True) for meal in self.meals]
        if self.percolated_coffee_quantity is not None:
            requests["percolated_coffee_quantity"] = self.percolated_coffee_quantity
        return requests


def collect_errors(error: ValidationError) -> Dict[str, List[str]]:
    """Flatten pydantic errors into ``{field: [messages]}``."""

    errors: Dict[str, List[str]] = {}
    for item in error.errors():
        location = [str(part) for part in item.get("loc", ()) if part != "body"]
        field = ".".join(location) or "_form"
        message = item.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, []).append(message)
    return errors
