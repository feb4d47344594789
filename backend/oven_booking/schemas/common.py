"""
Response envelope shared by every mutating endpoint: {success, message, data}.
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from oven_booking.core.exceptions import ErrorCode

T = TypeVar("T")


class ActionResponse(BaseModel, Generic[T]):
    success: bool
    message: str
    data: Optional[T] = None
    error_code: Optional[ErrorCode] = None
    details: Optional[dict] = None
