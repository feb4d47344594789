from oven_booking.models.user import User, UserRole, UserStatus
from oven_booking.models.oven import Oven, OvenStatus, OvenType
from oven_booking.models.booking import Booking, BookingStatus
from oven_booking.models.booking_event import ActorType, BookingEvent, BookingEventType

__all__ = [
    "User", "UserRole", "UserStatus",
    "Oven", "OvenStatus", "OvenType",
    "Booking", "BookingStatus",
    "BookingEvent", "BookingEventType", "ActorType",
]
