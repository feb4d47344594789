"""
Oven status board and admin oven management.
"""

from fastapi import APIRouter, Depends, status

from oven_booking.api.deps import complete_expired_bookings, get_current_actor, get_oven_service
from oven_booking.api.responses import respond
from oven_booking.domain.actor import Actor
from oven_booking.domain.results import OperationResult
from oven_booking.models.oven import OvenStatus
from oven_booking.schemas.booking import BookingResponse
from oven_booking.schemas.oven import (
    MaintenanceResponse,
    OvenBoardEntry,
    OvenBoardResponse,
    OvenCreate,
    OvenResponse,
    OvenUpdate,
)
from oven_booking.services.cache_service import (
    OVEN_BOARD_KEY,
    get_cached,
    invalidate_booking_views,
    set_cached,
)
from oven_booking.services.oven_service import OvenService

router = APIRouter(prefix="/ovens", tags=["Ovens"])


@router.get("/", dependencies=[Depends(complete_expired_bookings)])
async def oven_board(ovens: OvenService = Depends(get_oven_service)):
    """
    Every oven with its status and current user.

    Expired active bookings are completed before the board is read, so a
    finished booking never shows as in use.
    """
    cached = await get_cached(OVEN_BOARD_KEY)
    if cached is not None:
        board = OvenBoardResponse(**cached)
        board.cached = True
        return respond(OperationResult.ok(f"{len(board.ovens)} oven(s)", board))

    result = await ovens.list_ovens()
    if not result.success:
        return respond(result)

    board = OvenBoardResponse(
        ovens=[
            OvenBoardEntry(
                oven=OvenResponse.model_validate(oven),
                current_booking=BookingResponse.model_validate(booking) if booking else None,
            )
            for oven, booking in result.data
        ]
    )
    await set_cached(OVEN_BOARD_KEY, board.model_dump(mode="json"))
    return respond(OperationResult.ok(result.message, board))


@router.get("/{oven_id}")
async def get_oven(oven_id: int, ovens: OvenService = Depends(get_oven_service)):
    return respond(await ovens.get_oven(oven_id), OvenResponse.model_validate)


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_oven(
    payload: OvenCreate,
    actor: Actor = Depends(get_current_actor),
    ovens: OvenService = Depends(get_oven_service),
):
    result = await ovens.create_oven(
        actor, payload.name, payload.type, payload.max_temp, payload.description
    )
    if result.success:
        await invalidate_booking_views()
    return respond(result, OvenResponse.model_validate, status.HTTP_201_CREATED)


@router.patch("/{oven_id}")
async def update_oven(
    oven_id: int,
    payload: OvenUpdate,
    actor: Actor = Depends(get_current_actor),
    ovens: OvenService = Depends(get_oven_service),
):
    result = await ovens.update_oven(actor, oven_id, **payload.model_dump(exclude_unset=True))
    if result.success:
        await invalidate_booking_views()
    return respond(result, OvenResponse.model_validate)


@router.delete("/{oven_id}")
async def delete_oven(
    oven_id: int,
    actor: Actor = Depends(get_current_actor),
    ovens: OvenService = Depends(get_oven_service),
):
    result = await ovens.delete_oven(actor, oven_id)
    if result.success:
        await invalidate_booking_views()
    return respond(result)


@router.post("/{oven_id}/maintenance")
async def set_maintenance(
    oven_id: int,
    actor: Actor = Depends(get_current_actor),
    ovens: OvenService = Depends(get_oven_service),
):
    """Take the oven out of service and auto-cancel every active booking on it."""
    result = await ovens.set_maintenance(actor, oven_id)
    if result.success:
        await invalidate_booking_views()
    return respond(
        result,
        lambda count: MaintenanceResponse(
            oven_id=oven_id, status=OvenStatus.MAINTENANCE, auto_cancelled=count
        ),
    )


@router.delete("/{oven_id}/maintenance")
async def clear_maintenance(
    oven_id: int,
    actor: Actor = Depends(get_current_actor),
    ovens: OvenService = Depends(get_oven_service),
):
    result = await ovens.clear_maintenance(actor, oven_id)
    if result.success:
        await invalidate_booking_views()
    return respond(
        result,
        lambda oven: MaintenanceResponse(oven_id=oven.id, status=oven.status),
    )
