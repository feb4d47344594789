"""
Pydantic schemas for booking-related request/response validation.

Range rules (flap, temperature, purpose length, dates) are enforced by the
engine so direct callers get the same rejections; the schemas only fix types.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from oven_booking.models.booking import BookingStatus
from oven_booking.models.booking_event import ActorType, BookingEventType


class BookingCreate(BaseModel):
    oven_id: int
    start_date: datetime
    end_date: datetime
    purpose: str = Field(..., max_length=1000)
    usage_temp: int
    flap: int = 0


class BookingUpdate(BaseModel):
    start_date: datetime
    end_date: datetime
    purpose: str = Field(..., max_length=1000)
    usage_temp: int
    flap: int = 0
    oven_id: Optional[int] = None


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)


class BookingResponse(BaseModel):
    id: str
    owner_id: int
    oven_id: int
    start_date: datetime
    end_date: datetime
    purpose: str
    usage_temp: int
    flap: int
    status: BookingStatus
    created_at: datetime
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    cancel_reason: Optional[str] = None
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[int] = None

    model_config = {"from_attributes": True}


class BookingEventResponse(BaseModel):
    id: int
    booking_id: str
    actor_id: Optional[int]
    actor_type: ActorType
    event_type: BookingEventType
    note: Optional[str]
    payload: Optional[dict[str, Any]]
    created_at: datetime

    model_config = {"from_attributes": True}


class CalendarEntry(BaseModel):
    id: str
    oven_id: int
    oven_name: str
    owner_id: int
    owner_name: str
    start: datetime
    end: datetime
    purpose: str


class AutoCompleteResponse(BaseModel):
    completed: int
