"""
User registration and the admin approval queue.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from oven_booking.api.deps import get_current_actor, get_user_service
from oven_booking.api.responses import respond
from oven_booking.domain.actor import Actor
from oven_booking.models.user import UserStatus
from oven_booking.schemas.user import (
    UserProfileUpdate,
    UserRegister,
    UserResponse,
    UserRoleUpdate,
    UserSummary,
)
from oven_booking.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(payload: UserRegister, users: UserService = Depends(get_user_service)):
    """
    Register a new account. It stays PENDING, and cannot book, until an
    admin approves it.
    """
    result = await users.register_user(payload.name, payload.email, payload.phone)
    return respond(result, UserResponse.model_validate, status.HTTP_201_CREATED)


@router.get("/me")
async def get_me(
    actor: Actor = Depends(get_current_actor),
    users: UserService = Depends(get_user_service),
):
    return respond(await users.get_user(actor.id), UserResponse.model_validate)


@router.patch("/me")
async def update_me(
    payload: UserProfileUpdate,
    actor: Actor = Depends(get_current_actor),
    users: UserService = Depends(get_user_service),
):
    """Edit your own name, email and phone. Email and phone must not belong to another account."""
    result = await users.update_profile(actor, payload.name, payload.email, payload.phone)
    return respond(result, UserResponse.model_validate)


@router.get("/")
async def list_users(
    status_filter: Optional[UserStatus] = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    users: UserService = Depends(get_user_service),
):
    result = await users.list_users(actor, status_filter)
    return respond(
        result,
        lambda rows: [
            UserSummary(**UserResponse.model_validate(user).model_dump(), booking_count=count)
            for user, count in rows
        ],
    )


@router.post("/{user_id}/approve")
async def approve_user(
    user_id: int,
    actor: Actor = Depends(get_current_actor),
    users: UserService = Depends(get_user_service),
):
    return respond(await users.approve_user(actor, user_id), UserResponse.model_validate)


@router.post("/{user_id}/reject")
async def reject_user(
    user_id: int,
    actor: Actor = Depends(get_current_actor),
    users: UserService = Depends(get_user_service),
):
    return respond(await users.reject_user(actor, user_id), UserResponse.model_validate)


@router.put("/{user_id}/role")
async def set_role(
    user_id: int,
    payload: UserRoleUpdate,
    actor: Actor = Depends(get_current_actor),
    users: UserService = Depends(get_user_service),
):
    return respond(await users.set_user_role(actor, user_id, payload.role), UserResponse.model_validate)
