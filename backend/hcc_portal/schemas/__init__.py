from .forms import (
    EVENT_TYPES,
    BookingForm,
    EnquiryForm,
    MealRequest,
    RoomRequest,
    collect_errors,
)

__all__ = [
    "EVENT_TYPES",
    "BookingForm",
    "EnquiryForm",
    "MealRequest",
    "RoomRequest",
    "collect_errors",
]
