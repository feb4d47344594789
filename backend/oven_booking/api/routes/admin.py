"""
Admin booking management: oversight listing, completion, soft removal and
an on-demand auto-complete sweep.
"""

from fastapi import APIRouter, Depends, Query

from oven_booking.api.deps import complete_expired_bookings, get_booking_service, get_current_actor
from oven_booking.api.responses import many, respond
from oven_booking.domain.actor import Actor
from oven_booking.schemas.booking import AutoCompleteResponse, BookingResponse
from oven_booking.services.booking_service import BookingService
from oven_booking.services.cache_service import invalidate_booking_views

router = APIRouter(prefix="/admin/bookings", tags=["Admin"])


@router.get("/", dependencies=[Depends(complete_expired_bookings)])
async def list_all_bookings(
    include_removed: bool = Query(False),
    actor: Actor = Depends(get_current_actor),
    bookings: BookingService = Depends(get_booking_service),
):
    return respond(await bookings.list_all_bookings(actor, include_removed), many(BookingResponse))


@router.post("/auto-complete")
async def run_auto_complete(
    actor: Actor = Depends(get_current_actor),
    bookings: BookingService = Depends(get_booking_service),
):
    result = await bookings.auto_complete_bookings(actor)
    if result.success and result.data:
        await invalidate_booking_views()
    return respond(result, lambda count: AutoCompleteResponse(completed=count))


@router.post("/{booking_id}/complete")
async def complete_booking(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    bookings: BookingService = Depends(get_booking_service),
):
    result = await bookings.complete_booking(actor, booking_id)
    if result.success:
        await invalidate_booking_views()
    return respond(result, BookingResponse.model_validate)


@router.delete("/{booking_id}")
async def remove_booking(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    bookings: BookingService = Depends(get_booking_service),
):
    """Soft-remove a booking. An active booking is cancelled as part of the removal."""
    result = await bookings.remove_booking(actor, booking_id)
    if result.success:
        await invalidate_booking_views()
    return respond(result, BookingResponse.model_validate)
