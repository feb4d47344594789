"""
FastAPI dependencies: services wired to the shared session factory, and the
acting user.

The acting user comes from the X-User-Id header. Session authentication is
not part of this service; a gateway or auth layer in front of it is expected
to set that header.
"""

from typing import Optional

import structlog
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from oven_booking.core.clock import Clock, SystemClock
from oven_booking.core.config import get_settings
from oven_booking.db.session import get_session_factory
from oven_booking.domain.actor import Actor
from oven_booking.services.booking_service import BookingService
from oven_booking.services.cache_service import invalidate_booking_views
from oven_booking.services.oven_service import OvenService
from oven_booking.services.user_service import UserService


def get_sessions() -> async_sessionmaker[AsyncSession]:
    return get_session_factory()


def get_clock() -> Clock:
    return SystemClock()


def get_booking_service(
    sessions: async_sessionmaker[AsyncSession] = Depends(get_sessions),
    clock: Clock = Depends(get_clock),
) -> BookingService:
    return BookingService(sessions, clock=clock)


def get_oven_service(
    sessions: async_sessionmaker[AsyncSession] = Depends(get_sessions),
    clock: Clock = Depends(get_clock),
) -> OvenService:
    return OvenService(sessions, clock=clock)


def get_user_service(
    sessions: async_sessionmaker[AsyncSession] = Depends(get_sessions),
    clock: Clock = Depends(get_clock),
) -> UserService:
    return UserService(sessions, clock=clock)


async def get_current_actor(
    x_user_id: Optional[int] = Header(None),
    users: UserService = Depends(get_user_service),
) -> Actor:
    if x_user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="You must be logged in")

    actor = await users.get_actor(x_user_id)
    if actor is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")

    structlog.contextvars.bind_contextvars(actor_id=actor.id)
    return actor


async def complete_expired_bookings(bookings: BookingService = Depends(get_booking_service)) -> None:
    """
    Opportunistic auto-complete sweep for read endpoints that show booking
    status, so a booking past its end never reads as ACTIVE or holds a slot
    of its owner's active-booking limit.
    """
    if not get_settings().AUTO_COMPLETE_ON_READ:
        return
    swept = await bookings.auto_complete_bookings()
    if swept.success and swept.data:
        await invalidate_booking_views()
