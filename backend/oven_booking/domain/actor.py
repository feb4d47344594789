"""Explicit caller identity passed into every engine operation."""

from dataclasses import dataclass
from typing import Optional

from oven_booking.models.booking_event import ActorType
from oven_booking.models.user import UserRole


@dataclass(frozen=True)
class Actor:
    id: Optional[int]
    role: Optional[UserRole] = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_system(self) -> bool:
        return self.id is None and self.role is None

    @property
    def actor_type(self) -> ActorType:
        if self.is_system:
            return ActorType.SYSTEM
        return ActorType.ADMIN if self.is_admin else ActorType.USER

    @classmethod
    def system(cls) -> "Actor":
        """The scheduler. It holds no user role, so admin-only operations reject it."""
        return cls(id=None, role=None)
