"""
User directory record. Authentication lives outside this service; a user here
is only an identity with a role and an approval status.
"""

import enum

from sqlalchemy import Column, Enum, Integer, String

from oven_booking.db.base import Base, TimestampMixin


class UserRole(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class UserStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(32), nullable=True)
    role = Column(Enum(UserRole, native_enum=False, length=10), nullable=False, default=UserRole.USER)
    status = Column(
        Enum(UserStatus, native_enum=False, length=10),
        nullable=False,
        default=UserStatus.PENDING,
        index=True,
    )

    @property
    def is_approved(self) -> bool:
        return self.status == UserStatus.APPROVED

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role}, status={self.status})>"
