"""
User directory: registration, profile edits, admin approval and roles.

New users start PENDING and cannot book until an admin approves them.
"""

from typing import Optional

from email_validator import EmailNotValidError, validate_email

from oven_booking.core.exceptions import (
    AuthorizationError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from oven_booking.core.logging import get_logger
from oven_booking.domain.actor import Actor
from oven_booking.domain.results import OperationResult
from oven_booking.models.user import User, UserRole, UserStatus
from oven_booking.services.base import EngineService

logger = get_logger(__name__)

MIN_NAME_LENGTH = 2
MIN_PHONE_LENGTH = 8


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if len(name) < MIN_NAME_LENGTH:
        raise ValidationError("Name must be at least 2 characters", field="name")
    return name


def _clean_email(email: str) -> str:
    try:
        return validate_email((email or "").strip(), check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        raise ValidationError("Invalid email address", field="email")


def _clean_phone(phone: str) -> str:
    phone = (phone or "").strip()
    if len(phone) < MIN_PHONE_LENGTH:
        raise ValidationError("Phone must be at least 8 characters", field="phone")
    return phone


class UserService(EngineService):

    async def register_user(
        self,
        name: str,
        email: str,
        phone: Optional[str] = None,
    ) -> OperationResult[User]:
        return await self._run("register_user", self._register_user, name, email, phone)

    async def _register_user(self, name: str, email: str, phone: Optional[str]):
        name = _clean_name(name)
        email = _clean_email(email)
        phone = _clean_phone(phone) if phone else None

        now = self.clock.now()
        async with self.uow.transaction() as store:
            if await store.find_user_by_contact(email=email) is not None:
                logger.warning("registration_failed", reason="email_exists", email=email)
                raise ValidationError("Email already registered", field="email")

            user = User(
                name=name,
                email=email,
                phone=phone,
                role=UserRole.USER,
                status=UserStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            store.add(user)
            await store.flush()

        logger.info("user_registered", user_id=user.id, email=user.email)
        return OperationResult.ok("Registration received. An admin will review your account.", user)

    async def update_profile(
        self,
        actor: Actor,
        name: str,
        email: str,
        phone: str,
    ) -> OperationResult[User]:
        """Edit the caller's own name, email and phone."""
        return await self._run("update_profile", self._update_profile, actor, name, email, phone)

    async def _update_profile(self, actor: Actor, name: str, email: str, phone: str):
        if actor.id is None:
            raise AuthorizationError("Unauthorized")
        name = _clean_name(name)
        email = _clean_email(email)
        phone = _clean_phone(phone)

        async with self.uow.transaction() as store:
            user = await store.get_user(actor.id, for_update=True)
            if user is None:
                raise NotFoundError("user", actor.id)

            taken = await store.find_user_by_contact(email=email, phone=phone, exclude_id=user.id)
            if taken is not None:
                if taken.email == email:
                    raise ValidationError("Email already in use by another account", field="email")
                raise ValidationError("Phone number already in use", field="phone")

            user.name = name
            user.email = email
            user.phone = phone
            user.updated_at = self.clock.now()

        logger.info("user_profile_updated", user_id=user.id)
        return OperationResult.ok("Profile updated successfully", user)

    async def approve_user(self, actor: Actor, user_id: int) -> OperationResult[User]:
        return await self._run("approve_user", self._set_status, actor, user_id, UserStatus.APPROVED)

    async def reject_user(self, actor: Actor, user_id: int) -> OperationResult[User]:
        return await self._run("reject_user", self._set_status, actor, user_id, UserStatus.REJECTED)

    async def _set_status(self, actor: Actor, user_id: int, status: UserStatus):
        self._require_admin(actor)
        async with self.uow.transaction() as store:
            user = await store.get_user(user_id, for_update=True)
            if user is None:
                raise NotFoundError("user", user_id)
            user.status = status
            user.updated_at = self.clock.now()

        logger.info("user_status_changed", user_id=user_id, status=status.value, actor_id=actor.id)
        return OperationResult.ok(f"User {status.value.lower()}", user)

    async def set_user_role(self, actor: Actor, user_id: int, role: UserRole) -> OperationResult[User]:
        return await self._run("set_user_role", self._set_user_role, actor, user_id, role)

    async def _set_user_role(self, actor: Actor, user_id: int, role: UserRole):
        self._require_admin(actor)
        if user_id == actor.id and role != UserRole.ADMIN:
            raise InvalidStateTransitionError("You cannot remove your own admin role")

        async with self.uow.transaction() as store:
            user = await store.get_user(user_id, for_update=True)
            if user is None:
                raise NotFoundError("user", user_id)
            user.role = role
            user.updated_at = self.clock.now()

        logger.info("user_role_changed", user_id=user_id, role=role.value, actor_id=actor.id)
        return OperationResult.ok(f"Role set to {role.value}", user)

    async def list_users(
        self,
        actor: Actor,
        status: Optional[UserStatus] = None,
    ) -> OperationResult[list[tuple[User, int]]]:
        return await self._run("list_users", self._list_users, actor, status)

    async def _list_users(self, actor: Actor, status: Optional[UserStatus]):
        self._require_admin(actor)
        async with self.uow.read() as store:
            rows = await store.users_with_booking_counts(status)
        return OperationResult.ok(f"{len(rows)} user(s)", rows)

    async def get_user(self, user_id: int) -> OperationResult[User]:
        return await self._run("get_user", self._get_user, user_id)

    async def _get_user(self, user_id: int):
        async with self.uow.read() as store:
            user = await store.get_user(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return OperationResult.ok(user.name, user)

    async def get_actor(self, user_id: int) -> Optional[Actor]:
        """Resolve the (actor_id, role) pair for a known user, or None."""
        async with self.uow.read() as store:
            user = await store.get_user(user_id)
        if user is None:
            return None
        return Actor(id=user.id, role=user.role)
