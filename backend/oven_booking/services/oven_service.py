"""
Oven directory and maintenance cascade.

Putting an oven into maintenance and auto-cancelling its active bookings is a
single transaction: the oven row is locked first, so no create or edit that
targets this oven can commit between the status flip and the sweep.
Clearing maintenance never brings auto-cancelled bookings back.
"""

from typing import Optional

from oven_booking.core.exceptions import (
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from oven_booking.core.logging import get_logger
from oven_booking.core.metrics import maintenance_auto_cancelled
from oven_booking.db.unit_of_work import BookingStore
from oven_booking.domain.actor import Actor
from oven_booking.domain.booking_state import assert_booking_transition
from oven_booking.domain.results import OperationResult
from oven_booking.models.booking import Booking, BookingStatus
from oven_booking.models.booking_event import BookingEventType
from oven_booking.models.oven import Oven, OvenStatus, OvenType
from oven_booking.services.base import EngineService
from oven_booking.services.event_log import append_event

logger = get_logger(__name__)

MAINTENANCE_CANCEL_REASON = "Auto-cancelled due to maintenance"

UPDATABLE_FIELDS = ("name", "type", "max_temp", "description")


class OvenService(EngineService):

    # ── Maintenance ─────────────────────────────────────────────────

    async def set_maintenance(self, actor: Actor, oven_id: int) -> OperationResult[int]:
        return await self._run("set_maintenance", self._set_maintenance, actor, oven_id)

    async def _set_maintenance(self, actor: Actor, oven_id: int):
        self._require_admin(actor)
        now = self.clock.now()

        async with self.uow.transaction() as store:
            oven = await store.get_oven(oven_id, for_update=True)
            if oven is None:
                raise NotFoundError("oven", oven_id)
            if oven.under_maintenance:
                raise InvalidStateTransitionError(f"{oven.name} is already under maintenance")

            oven.status = OvenStatus.MAINTENANCE
            oven.updated_at = now

            affected = await store.active_bookings_on_oven(oven.id)
            for booking in affected:
                assert_booking_transition(booking.status, BookingStatus.AUTO_CANCELLED)
                booking.status = BookingStatus.AUTO_CANCELLED
                booking.cancelled_at = now
                booking.cancelled_by = actor.id
                booking.cancel_reason = MAINTENANCE_CANCEL_REASON
                booking.updated_at = now
                append_event(
                    store,
                    booking,
                    actor,
                    BookingEventType.AUTO_CANCELLED,
                    now,
                    note=MAINTENANCE_CANCEL_REASON,
                )

        maintenance_auto_cancelled.inc(len(affected))
        logger.info(
            "oven_maintenance_set",
            oven_id=oven_id,
            actor_id=actor.id,
            auto_cancelled=len(affected),
        )
        return OperationResult.ok(
            f"Oven set to maintenance. {len(affected)} active booking(s) have been auto-cancelled.",
            len(affected),
        )

    async def clear_maintenance(self, actor: Actor, oven_id: int) -> OperationResult[Oven]:
        return await self._run("clear_maintenance", self._clear_maintenance, actor, oven_id)

    async def _clear_maintenance(self, actor: Actor, oven_id: int):
        self._require_admin(actor)
        now = self.clock.now()

        async with self.uow.transaction() as store:
            oven = await store.get_oven(oven_id, for_update=True)
            if oven is None:
                raise NotFoundError("oven", oven_id)
            if not oven.under_maintenance:
                raise InvalidStateTransitionError(f"{oven.name} is not under maintenance")
            oven.status = OvenStatus.AVAILABLE
            oven.updated_at = now

        logger.info("oven_maintenance_cleared", oven_id=oven_id, actor_id=actor.id)
        return OperationResult.ok("Oven is now available for bookings", oven)

    # ── Directory ───────────────────────────────────────────────────

    async def list_ovens(self) -> OperationResult[list[tuple[Oven, Optional[Booking]]]]:
        return await self._run("list_ovens", self._list_ovens)

    async def _list_ovens(self):
        """Every oven with the active booking occupying it right now, if any."""
        now = self.clock.now()
        async with self.uow.read() as store:
            board = await store.ovens_with_current_booking(now)
        return OperationResult.ok(f"{len(board)} oven(s)", board)

    async def get_oven(self, oven_id: int) -> OperationResult[Oven]:
        return await self._run("get_oven", self._get_oven, oven_id)

    async def _get_oven(self, oven_id: int):
        async with self.uow.read() as store:
            oven = await store.get_oven(oven_id)
        if oven is None:
            raise NotFoundError("oven", oven_id)
        return OperationResult.ok(oven.name, oven)

    async def create_oven(
        self,
        actor: Actor,
        name: str,
        type: OvenType,
        max_temp: int,
        description: Optional[str] = None,
    ) -> OperationResult[Oven]:
        return await self._run("create_oven", self._create_oven, actor, name, type, max_temp, description)

    async def _create_oven(self, actor: Actor, name: str, type: OvenType, max_temp: int, description: Optional[str]):
        self._require_admin(actor)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Oven name is required", field="name")
        if max_temp < 1:
            raise ValidationError("Max temperature must be positive", field="max_temp")

        now = self.clock.now()
        async with self.uow.transaction() as store:
            await self._assert_name_free(store, name)
            oven = Oven(
                name=name,
                type=type,
                status=OvenStatus.AVAILABLE,
                max_temp=max_temp,
                description=description,
                created_at=now,
                updated_at=now,
            )
            store.add(oven)
            await store.flush()

        logger.info("oven_created", oven_id=oven.id, name=oven.name, max_temp=oven.max_temp)
        return OperationResult.ok(f"{oven.name} created", oven)

    async def update_oven(self, actor: Actor, oven_id: int, **changes) -> OperationResult[Oven]:
        """
        Edit name, type, max_temp or description. Existing bookings keep the
        temperature they were validated against.
        """
        return await self._run("update_oven", self._update_oven, actor, oven_id, changes)

    async def _update_oven(self, actor: Actor, oven_id: int, changes: dict):
        self._require_admin(actor)
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unsupported oven field(s): {', '.join(sorted(unknown))}")
        changes = {key: value for key, value in changes.items() if value is not None}
        if "name" in changes:
            changes["name"] = changes["name"].strip()
            if not changes["name"]:
                raise ValidationError("Oven name is required", field="name")
        if "max_temp" in changes and changes["max_temp"] < 1:
            raise ValidationError("Max temperature must be positive", field="max_temp")

        now = self.clock.now()
        async with self.uow.transaction() as store:
            oven = await store.get_oven(oven_id, for_update=True)
            if oven is None:
                raise NotFoundError("oven", oven_id)
            if "name" in changes and changes["name"] != oven.name:
                await self._assert_name_free(store, changes["name"])
            for key, value in changes.items():
                setattr(oven, key, value)
            oven.updated_at = now

        logger.info("oven_updated", oven_id=oven_id, fields=sorted(changes))
        return OperationResult.ok("Oven updated", oven)

    async def delete_oven(self, actor: Actor, oven_id: int) -> OperationResult[None]:
        return await self._run("delete_oven", self._delete_oven, actor, oven_id)

    async def _delete_oven(self, actor: Actor, oven_id: int):
        self._require_admin(actor)
        async with self.uow.transaction() as store:
            oven = await store.get_oven(oven_id, for_update=True)
            if oven is None:
                raise NotFoundError("oven", oven_id)
            if await store.oven_has_history(oven_id):
                raise InvalidStateTransitionError(
                    f"{oven.name} has booking history and cannot be deleted; "
                    "put it under maintenance instead"
                )
            await store.delete(oven)

        logger.info("oven_deleted", oven_id=oven_id, actor_id=actor.id)
        return OperationResult.ok("Oven deleted")

    @staticmethod
    async def _assert_name_free(store: BookingStore, name: str) -> None:
        if await store.oven_name_taken(name):
            raise ValidationError(f"An oven named {name} already exists", field="name")
