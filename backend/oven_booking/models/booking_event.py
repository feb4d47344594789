"""
Append-only lifecycle ledger. Rows are written alongside every state change
and never updated or deleted.
"""

import enum

from sqlalchemy import JSON, Column, Enum, ForeignKey, Integer, String

from oven_booking.db.base import Base, UTCDateTime, utcnow


class ActorType(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"


class BookingEventType(str, enum.Enum):
    CREATED = "CREATED"
    EDITED = "EDITED"
    CANCELLED = "CANCELLED"
    AUTO_CANCELLED = "AUTO_CANCELLED"
    COMPLETED = "COMPLETED"
    REMOVED = "REMOVED"


class BookingEvent(Base):
    __tablename__ = "booking_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False, index=True)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    actor_type = Column(Enum(ActorType, native_enum=False, length=10), nullable=False)
    event_type = Column(Enum(BookingEventType, native_enum=False, length=20), nullable=False, index=True)
    note = Column(String(255), nullable=True)
    payload = Column(JSON, nullable=True)
    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<BookingEvent(id={self.id}, booking={self.booking_id}, type={self.event_type})>"
