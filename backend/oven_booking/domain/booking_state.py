"""Booking status state machine."""

from oven_booking.core.exceptions import InvalidStateTransitionError
from oven_booking.models.booking import BookingStatus

BOOKING_TRANSITIONS = {
    BookingStatus.ACTIVE: {
        BookingStatus.COMPLETED,
        BookingStatus.CANCELLED,
        BookingStatus.AUTO_CANCELLED,
    },
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
    BookingStatus.AUTO_CANCELLED: set(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in BOOKING_TRANSITIONS.get(current, set())


def assert_booking_transition(current: BookingStatus, target: BookingStatus) -> None:
    if not can_transition(current, target):
        raise InvalidStateTransitionError(
            f"Booking is {current.value}; it cannot become {target.value}",
            details={"current_status": current.value, "target_status": target.value},
        )
