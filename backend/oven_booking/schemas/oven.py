"""
Pydantic schemas for oven-related request/response validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from oven_booking.models.oven import OvenStatus, OvenType
from oven_booking.schemas.booking import BookingResponse


class OvenCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: OvenType
    max_temp: int = Field(..., gt=0, le=2000)
    description: Optional[str] = Field(None, max_length=500)


class OvenUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[OvenType] = None
    max_temp: Optional[int] = Field(None, gt=0, le=2000)
    description: Optional[str] = Field(None, max_length=500)


class OvenResponse(BaseModel):
    id: int
    name: str
    type: OvenType
    status: OvenStatus
    max_temp: int
    description: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class OvenBoardEntry(BaseModel):
    """Status board row: the oven plus whoever is using it right now."""

    oven: OvenResponse
    current_booking: Optional[BookingResponse] = None


class OvenBoardResponse(BaseModel):
    ovens: list[OvenBoardEntry]
    cached: bool = False


class MaintenanceResponse(BaseModel):
    oven_id: int
    status: OvenStatus
    auto_cancelled: int = 0
