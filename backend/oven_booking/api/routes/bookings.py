"""
Booking endpoints for the acting user. Every mutation goes through the
booking engine, which validates and writes in one transaction.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from oven_booking.api.deps import complete_expired_bookings, get_booking_service, get_current_actor
from oven_booking.api.responses import many, respond
from oven_booking.domain.actor import Actor
from oven_booking.domain.results import OperationResult
from oven_booking.domain.rules import BookingInput
from oven_booking.models.booking import BookingStatus
from oven_booking.schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingEventResponse,
    BookingResponse,
    BookingUpdate,
    CalendarEntry,
)
from oven_booking.services.booking_service import BookingService
from oven_booking.services.cache_service import calendar_key, get_cached, invalidate_booking_views, set_cached

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    actor: Actor = Depends(get_current_actor),
    bookings: BookingService = Depends(get_booking_service),
):
    """
    Reserve an oven for [start_date, end_date).

    Rejected when the slot overlaps another active booking on the same oven,
    when the oven is under maintenance, when usage_temp exceeds the oven's
    max, or when the user already holds the maximum number of active bookings.
    """
    result = await bookings.create_booking(
        actor,
        payload.oven_id,
        BookingInput(
            start_date=payload.start_date,
            end_date=payload.end_date,
            purpose=payload.purpose,
            usage_temp=payload.usage_temp,
            flap=payload.flap,
        ),
    )
    if result.success:
        await invalidate_booking_views()
    return respond(result, BookingResponse.model_validate, status.HTTP_201_CREATED)


@router.get("/", dependencies=[Depends(complete_expired_bookings)])
async def list_my_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    bookings: BookingService = Depends(get_booking_service),
):
    """Every booking you own, newest first, in any status. Removed bookings are hidden."""
    return respond(await bookings.list_my_bookings(actor, status_filter), many(BookingResponse))


@router.get("/calendar")
async def booking_calendar(
    oven_id: Optional[int] = Query(None, ge=1),
    actor: Actor = Depends(get_current_actor),
    bookings: BookingService = Depends(get_booking_service),
):
    """Active bookings for the calendar view, optionally for one oven."""
    key = calendar_key(oven_id)
    cached = await get_cached(key)
    if cached is not None:
        return respond(OperationResult.ok(f"{len(cached)} booking(s)", cached))

    result = await bookings.calendar(oven_id)
    response = respond(result, many(CalendarEntry))
    if result.success:
        await set_cached(key, [entry.model_dump(mode="json") for entry in result.data])
    return response


@router.patch("/{booking_id}")
async def edit_booking(
    booking_id: str,
    payload: BookingUpdate,
    actor: Actor = Depends(get_current_actor),
    bookings: BookingService = Depends(get_booking_service),
):
    """Edit an active booking. Non-admins may only do so shortly after creating it."""
    result = await bookings.edit_booking(
        actor,
        booking_id,
        BookingInput(
            start_date=payload.start_date,
            end_date=payload.end_date,
            purpose=payload.purpose,
            usage_temp=payload.usage_temp,
            flap=payload.flap,
        ),
        oven_id=payload.oven_id,
    )
    if result.success:
        await invalidate_booking_views()
    return respond(result, BookingResponse.model_validate)


@router.post("/{booking_id}/cancel")
async def cancel_booking(
    booking_id: str,
    payload: Optional[BookingCancel] = None,
    actor: Actor = Depends(get_current_actor),
    bookings: BookingService = Depends(get_booking_service),
):
    """Cancel an active booking. Non-admins may only do so shortly after creating it."""
    reason = payload.reason if payload else None
    result = await bookings.cancel_booking(actor, booking_id, reason=reason)
    if result.success:
        await invalidate_booking_views()
    return respond(result, BookingResponse.model_validate)


@router.get("/{booking_id}/events")
async def booking_history(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    bookings: BookingService = Depends(get_booking_service),
):
    """Lifecycle events for one booking, oldest first."""
    return respond(await bookings.get_booking_history(actor, booking_id), many(BookingEventResponse))
