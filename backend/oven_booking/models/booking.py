"""
Booking model: one user's reservation of one oven for a half-open
interval [start_date, end_date).

Key design decisions:
- Status is never reverted once terminal (COMPLETED, CANCELLED, AUTO_CANCELLED)
- Removal is a soft delete (`deleted_at`); the row and its events are kept for audit
- Composite indexes cover the two hot validation queries: overlap per oven and
  active count per owner
"""

import enum
import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from oven_booking.db.base import Base, TimestampMixin, UTCDateTime


class BookingStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    AUTO_CANCELLED = "AUTO_CANCELLED"


def _new_booking_id() -> str:
    return str(uuid.uuid4())


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=_new_booking_id)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    oven_id = Column(Integer, ForeignKey("ovens.id"), nullable=False, index=True)
    start_date = Column(UTCDateTime(), nullable=False)
    end_date = Column(UTCDateTime(), nullable=False)
    purpose = Column(Text, nullable=False)
    usage_temp = Column(Integer, nullable=False)
    flap = Column(Integer, nullable=False, default=0)
    status = Column(
        Enum(BookingStatus, native_enum=False, length=20),
        nullable=False,
        default=BookingStatus.ACTIVE,
    )

    cancelled_at = Column(UTCDateTime(), nullable=True)
    cancelled_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    cancel_reason = Column(String(255), nullable=True)

    deleted_at = Column(UTCDateTime(), nullable=True)
    deleted_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="check_booking_interval"),
        CheckConstraint("usage_temp > 0", name="check_booking_usage_temp_positive"),
        CheckConstraint("flap >= 0 AND flap <= 100", name="check_booking_flap_range"),
        Index("ix_bookings_oven_status", "oven_id", "status"),
        Index("ix_bookings_owner_status", "owner_id", "status"),
    )

    @property
    def is_removed(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, oven={self.oven_id}, owner={self.owner_id}, status={self.status})>"
