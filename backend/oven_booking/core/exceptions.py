"""
Typed rejections raised by the booking engine.

Every expected business-rule violation is a BookingRejection. Raising one
inside a transaction block rolls the transaction back; the engine boundary
turns it into a failed OperationResult instead of letting it escape.
"""

from enum import Enum
from typing import Any, Dict, Optional

from fastapi import status


class ErrorCode(str, Enum):
    """Stable machine-readable rejection codes."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    AUTHORIZATION = "AUTHORIZATION"
    VALIDATION = "VALIDATION"
    CAPACITY = "CAPACITY"
    RESOURCE_UNAVAILABLE = "RESOURCE_UNAVAILABLE"
    TEMPERATURE_EXCEEDED = "TEMPERATURE_EXCEEDED"
    OVERLAP = "OVERLAP"
    WINDOW_EXPIRED = "WINDOW_EXPIRED"
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"
    NOT_FOUND = "NOT_FOUND"


class BookingRejection(Exception):
    """Base class for expected, recoverable rejections."""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR
    http_status: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class AuthorizationError(BookingRejection):
    """Actor lacks the role, approval or ownership the operation needs."""

    error_code = ErrorCode.AUTHORIZATION
    http_status = status.HTTP_403_FORBIDDEN


class ValidationError(BookingRejection):
    """Malformed or out-of-range input."""

    error_code = ErrorCode.VALIDATION
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, details={"field": field} if field else None, **kwargs)
        self.field = field


class CapacityError(BookingRejection):
    error_code = ErrorCode.CAPACITY
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, limit: int):
        super().__init__(
            f"You already have {limit} active bookings (maximum)",
            details={"limit": limit},
        )


class ResourceUnavailableError(BookingRejection):
    error_code = ErrorCode.RESOURCE_UNAVAILABLE
    http_status = status.HTTP_409_CONFLICT


class TemperatureExceededError(BookingRejection):
    error_code = ErrorCode.TEMPERATURE_EXCEEDED
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, oven_name: str, requested: int, max_temp: int):
        super().__init__(
            f"Temperature {requested}°C exceeds {oven_name} max of {max_temp}°C",
            details={"requested": requested, "max_temp": max_temp},
        )


class OverlapError(BookingRejection):
    error_code = ErrorCode.OVERLAP
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, conflicting_booking_id: str):
        super().__init__(
            "This time slot overlaps with an existing booking",
            details={"conflicting_booking_id": conflicting_booking_id},
        )


class WindowExpiredError(BookingRejection):
    error_code = ErrorCode.WINDOW_EXPIRED
    http_status = status.HTTP_403_FORBIDDEN

    def __init__(self, action: str, minutes: int):
        super().__init__(
            f"The {minutes}-minute {action} window has expired. "
            "Please contact an admin if you need to make changes.",
            details={"window_minutes": minutes},
        )


class InvalidStateTransitionError(BookingRejection):
    error_code = ErrorCode.INVALID_STATE_TRANSITION
    http_status = status.HTTP_409_CONFLICT


class NotFoundError(BookingRejection):
    error_code = ErrorCode.NOT_FOUND
    http_status = status.HTTP_404_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: Any):
        super().__init__(
            f"{resource_type.capitalize()} not found",
            details={"resource_type": resource_type, "resource_id": str(resource_id)},
        )
