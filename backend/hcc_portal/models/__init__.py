from .booking import Booking, BookingSource, BookingStatus, BookingType, DepositStatus
from .catering import Caterer, CommentAuthorRole, MealJob, MealJobComment, MealJobItem, MealJobStatus, MealType, MenuItem
from .enquiry import Enquiry, EnquiryNote, EnquiryQuote, EnquiryStatus, NoteType
from .profile import Profile, ProfileRole
from .rooming import DietaryProfile, Guest, RoomingGroup, RoomingGroupStatus, Severity
from .venue import (
    Room,
    RoomAction,
    RoomAssignment,
    RoomStatusLog,
    RoomType,
    Space,
    SpaceReservation,
    SpaceReservationStatus,
)

__all__ = [
    "Booking",
    "BookingSource",
    "BookingStatus",
    "BookingType",
    "DepositStatus",
    "Caterer",
    "CommentAuthorRole",
    "MealJob",
    "MealJobComment",
    "MealJobItem",
    "MealJobStatus",
    "MealType",
    "MenuItem",
    "Enquiry",
    "EnquiryNote",
    "EnquiryQuote",
    "EnquiryStatus",
    "NoteType",
    "Profile",
    "ProfileRole",
    "DietaryProfile",
    "Guest",
    "RoomingGroup",
    "RoomingGroupStatus",
    "Severity",
    "Room",
    "RoomAction",
    "RoomAssignment",
    "RoomStatusLog",
    "RoomType",
    "Space",
    "SpaceReservation",
    "SpaceReservationStatus",
]
