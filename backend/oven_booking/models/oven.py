"""
Oven model: a shared, bookable piece of lab equipment.

Key design decisions:
- `max_temp` is the ceiling every booking's usage temperature is checked against
- `status` MAINTENANCE blocks new bookings; flipping it cascades to active ones
- Never deleted once it has booking history (enforced in the oven service)
"""

import enum

from sqlalchemy import CheckConstraint, Column, Enum, Integer, String

from oven_booking.db.base import Base, TimestampMixin


class OvenType(str, enum.Enum):
    NON_AQUEOUS = "NON_AQUEOUS"
    AQUEOUS = "AQUEOUS"


class OvenStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    MAINTENANCE = "MAINTENANCE"


class Oven(Base, TimestampMixin):
    __tablename__ = "ovens"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    type = Column(Enum(OvenType, native_enum=False, length=20), nullable=False)
    status = Column(
        Enum(OvenStatus, native_enum=False, length=20),
        nullable=False,
        default=OvenStatus.AVAILABLE,
    )
    max_temp = Column(Integer, nullable=False)
    description = Column(String(500), nullable=True)

    __table_args__ = (
        CheckConstraint("max_temp > 0", name="check_oven_max_temp_positive"),
    )

    @property
    def under_maintenance(self) -> bool:
        return self.status == OvenStatus.MAINTENANCE

    def __repr__(self) -> str:
        return f"<Oven(id={self.id}, name={self.name}, status={self.status}, max_temp={self.max_temp})>"
