from oven_booking.schemas.common import ActionResponse
from oven_booking.schemas.booking import (
    BookingCreate, BookingUpdate, BookingCancel, BookingResponse,
    BookingEventResponse, CalendarEntry, AutoCompleteResponse,
)
from oven_booking.schemas.oven import (
    OvenCreate, OvenUpdate, OvenResponse, OvenBoardEntry, OvenBoardResponse, MaintenanceResponse,
)
from oven_booking.schemas.user import UserProfileUpdate, UserRegister, UserRoleUpdate, UserResponse, UserSummary

__all__ = [
    "ActionResponse",
    "BookingCreate", "BookingUpdate", "BookingCancel", "BookingResponse",
    "BookingEventResponse", "CalendarEntry", "AutoCompleteResponse",
    "OvenCreate", "OvenUpdate", "OvenResponse", "OvenBoardEntry", "OvenBoardResponse",
    "MaintenanceResponse",
    "UserProfileUpdate", "UserRegister", "UserRoleUpdate", "UserResponse", "UserSummary",
]
