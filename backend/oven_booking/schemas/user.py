"""
Pydantic schemas for user-directory request/response validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from oven_booking.models.user import UserRole, UserStatus


class UserRegister(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, min_length=8, max_length=32)


class UserProfileUpdate(BaseModel):
    """Checked by the user directory so direct callers get the same messages."""

    name: str = Field(..., max_length=100)
    email: str = Field(..., max_length=255)
    phone: str = Field(..., max_length=32)


class UserRoleUpdate(BaseModel):
    role: UserRole


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str]
    role: UserRole
    status: UserStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class UserSummary(UserResponse):
    booking_count: int = 0
