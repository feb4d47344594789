"""Uniform result shape returned by every engine operation."""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from oven_booking.core.exceptions import BookingRejection, ErrorCode

T = TypeVar("T")

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"


@dataclass
class OperationResult(Generic[T]):
    success: bool
    message: str
    data: Optional[T] = None
    error_code: Optional[ErrorCode] = None
    rejection: Optional[BookingRejection] = None

    @classmethod
    def ok(cls, message: str, data: Optional[T] = None) -> "OperationResult[T]":
        return cls(success=True, message=message, data=data)

    @classmethod
    def rejected(cls, rejection: BookingRejection) -> "OperationResult[T]":
        return cls(
            success=False,
            message=rejection.message,
            error_code=rejection.error_code,
            rejection=rejection,
        )

    @classmethod
    def failed(cls) -> "OperationResult[T]":
        return cls(success=False, message=UNEXPECTED_ERROR_MESSAGE, error_code=ErrorCode.INTERNAL_ERROR)
