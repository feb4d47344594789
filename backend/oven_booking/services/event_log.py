"""
Booking event ledger. Appends only; the engine never reads it back to decide
anything.
"""

from datetime import datetime
from typing import Optional

from oven_booking.db.unit_of_work import BookingStore
from oven_booking.domain.actor import Actor
from oven_booking.models.booking import Booking
from oven_booking.models.booking_event import BookingEvent, BookingEventType


def append_event(
    store: BookingStore,
    booking: Booking,
    actor: Actor,
    event_type: BookingEventType,
    at: datetime,
    note: Optional[str] = None,
    payload: Optional[dict] = None,
) -> BookingEvent:
    """Stage an event in the caller's transaction; it commits or rolls back with it."""
    event = BookingEvent(
        booking_id=booking.id,
        actor_id=actor.id,
        actor_type=actor.actor_type,
        event_type=event_type,
        note=note,
        payload=payload,
        created_at=at,
    )
    store.add(event)
    return event
