"""
Booking lifecycle engine.

Each public coroutine is an independent entry point returning an
OperationResult. Validation reads and the write they justify happen inside a
single UnitOfWork transaction (see db/unit_of_work.py for the lock order), and
every status transition stages exactly one BookingEvent in that transaction.

Lifecycle:
    (none) --CREATED--> ACTIVE --{CANCELLED | AUTO_CANCELLED | COMPLETED}--> terminal
    EDITED is a self-loop on ACTIVE; REMOVED is an orthogonal soft delete.
"""

from typing import Optional

from oven_booking.core.exceptions import (
    AuthorizationError,
    CapacityError,
    InvalidStateTransitionError,
    NotFoundError,
    OverlapError,
    ResourceUnavailableError,
    TemperatureExceededError,
)
from oven_booking.core.logging import get_logger
from oven_booking.core.metrics import auto_completed_bookings
from oven_booking.db.unit_of_work import BookingStore
from oven_booking.domain.actor import Actor
from oven_booking.domain.booking_state import assert_booking_transition
from oven_booking.domain.results import OperationResult
from oven_booking.domain.rules import (
    BookingInput,
    assert_within_grace_window,
    edit_snapshot,
    normalize_input,
    validate_booking_input,
)
from oven_booking.models.booking import Booking, BookingStatus
from oven_booking.models.booking_event import BookingEvent, BookingEventType
from oven_booking.models.oven import Oven
from oven_booking.schemas.booking import CalendarEntry
from oven_booking.services.base import EngineService
from oven_booking.services.event_log import append_event

logger = get_logger(__name__)

USER_CANCEL_REASON = "Cancelled by user"
ADMIN_CANCEL_REASON = "Cancelled by admin"
REMOVAL_CANCEL_REASON = "Removed by admin"
AUTO_COMPLETE_NOTE = "Auto-completed after end date"

EDITABLE_FIELDS = ("oven_id", "start_date", "end_date", "purpose", "usage_temp", "flap")


def _assert_oven_bookable(oven: Optional[Oven]) -> Oven:
    if oven is None:
        raise ResourceUnavailableError("Oven not found")
    if oven.under_maintenance:
        raise ResourceUnavailableError(f"{oven.name} is currently under maintenance")
    return oven


def _assert_temperature(oven: Oven, usage_temp: int) -> None:
    if usage_temp > oven.max_temp:
        raise TemperatureExceededError(oven.name, usage_temp, oven.max_temp)


def _assert_can_manage(actor: Actor, booking: Booking, action: str) -> None:
    if not actor.is_admin and booking.owner_id != actor.id:
        raise AuthorizationError(f"You can only {action} your own bookings")


async def _assert_no_overlap(
    store: BookingStore,
    oven_id: int,
    data: BookingInput,
    exclude_id: Optional[str] = None,
) -> None:
    conflict = await store.find_overlapping_booking(
        oven_id, data.start_date, data.end_date, exclude_id=exclude_id
    )
    if conflict is not None:
        raise OverlapError(conflict.id)


async def _load_live_booking(store: BookingStore, booking_id: str) -> Booking:
    booking = await store.get_booking(booking_id, for_update=True)
    if booking is None or booking.is_removed:
        raise NotFoundError("booking", booking_id)
    return booking


class BookingService(EngineService):

    # ── Create ──────────────────────────────────────────────────────

    async def create_booking(
        self,
        actor: Actor,
        oven_id: int,
        data: BookingInput,
    ) -> OperationResult[Booking]:
        return await self._run("create", self._create_booking, actor, oven_id, data)

    async def _create_booking(self, actor: Actor, oven_id: int, data: BookingInput):
        now = self.clock.now()
        data = normalize_input(data, self.limits)

        async with self.uow.transaction() as store:
            user = await store.get_user(actor.id, for_update=True) if actor.id is not None else None
            if user is None or not user.is_approved:
                raise AuthorizationError("Your account is not approved")

            validate_booking_input(data, now, self.limits)

            active = await store.count_active_bookings(user.id)
            if active >= self.limits.max_active_per_user:
                raise CapacityError(self.limits.max_active_per_user)

            oven = _assert_oven_bookable(await store.get_oven(oven_id, for_update=True))
            _assert_temperature(oven, data.usage_temp)
            await _assert_no_overlap(store, oven.id, data)

            booking = Booking(
                owner_id=user.id,
                oven_id=oven.id,
                start_date=data.start_date,
                end_date=data.end_date,
                purpose=data.purpose,
                usage_temp=data.usage_temp,
                flap=data.flap,
                status=BookingStatus.ACTIVE,
                created_at=now,
                updated_at=now,
            )
            store.add(booking)
            await store.flush()
            append_event(store, booking, actor, BookingEventType.CREATED, now)

        logger.info(
            "booking_created",
            booking_id=booking.id,
            owner_id=booking.owner_id,
            oven_id=booking.oven_id,
            start=booking.start_date.isoformat(),
            end=booking.end_date.isoformat(),
        )
        return OperationResult.ok("Booking created successfully!", booking)

    # ── Edit ────────────────────────────────────────────────────────

    async def edit_booking(
        self,
        actor: Actor,
        booking_id: str,
        data: BookingInput,
        oven_id: Optional[int] = None,
    ) -> OperationResult[Booking]:
        return await self._run("edit", self._edit_booking, actor, booking_id, data, oven_id)

    async def _edit_booking(self, actor: Actor, booking_id: str, data: BookingInput, oven_id: Optional[int]):
        now = self.clock.now()
        data = normalize_input(data, self.limits)

        async with self.uow.transaction() as store:
            # Unlocked peek to learn which oven rows to lock; oven locks come
            # before the booking lock.
            current = await store.get_booking(booking_id)
            if current is None or current.is_removed:
                raise NotFoundError("booking", booking_id)
            target_oven_id = oven_id if oven_id is not None else current.oven_id
            ovens = await store.lock_ovens({current.oven_id, target_oven_id})

            booking = await _load_live_booking(store, booking_id)
            _assert_can_manage(actor, booking, "edit")
            if booking.status != BookingStatus.ACTIVE:
                raise InvalidStateTransitionError("Only active bookings can be edited")
            if not actor.is_admin:
                assert_within_grace_window(booking.created_at, now, self.limits, "edit")

            validate_booking_input(
                data,
                now,
                self.limits,
                check_start_in_past=data.start_date != booking.start_date,
            )
            oven = _assert_oven_bookable(ovens.get(target_oven_id))
            _assert_temperature(oven, data.usage_temp)
            await _assert_no_overlap(store, oven.id, data, exclude_id=booking.id)

            before = {field: getattr(booking, field) for field in EDITABLE_FIELDS}
            booking.oven_id = oven.id
            booking.start_date = data.start_date
            booking.end_date = data.end_date
            booking.purpose = data.purpose
            booking.usage_temp = data.usage_temp
            booking.flap = data.flap
            booking.updated_at = now
            after = {field: getattr(booking, field) for field in EDITABLE_FIELDS}

            append_event(
                store,
                booking,
                actor,
                BookingEventType.EDITED,
                now,
                payload=edit_snapshot(before, after),
            )

        logger.info("booking_edited", booking_id=booking.id, actor_id=actor.id)
        return OperationResult.ok("Booking updated successfully", booking)

    # ── Cancel ──────────────────────────────────────────────────────

    async def cancel_booking(
        self,
        actor: Actor,
        booking_id: str,
        reason: Optional[str] = None,
    ) -> OperationResult[Booking]:
        return await self._run("cancel", self._cancel_booking, actor, booking_id, reason)

    async def _cancel_booking(self, actor: Actor, booking_id: str, reason: Optional[str]):
        now = self.clock.now()

        async with self.uow.transaction() as store:
            booking = await _load_live_booking(store, booking_id)
            _assert_can_manage(actor, booking, "cancel")
            if booking.status != BookingStatus.ACTIVE:
                raise InvalidStateTransitionError("Only active bookings can be cancelled")
            if not actor.is_admin:
                assert_within_grace_window(booking.created_at, now, self.limits, "cancellation")

            reason = (reason or "").strip() or (ADMIN_CANCEL_REASON if actor.is_admin else USER_CANCEL_REASON)
            booking.status = BookingStatus.CANCELLED
            booking.cancelled_at = now
            booking.cancelled_by = actor.id
            booking.cancel_reason = reason
            booking.updated_at = now
            append_event(store, booking, actor, BookingEventType.CANCELLED, now, note=reason)

        logger.info("booking_cancelled", booking_id=booking.id, actor_id=actor.id, reason=reason)
        return OperationResult.ok("Booking cancelled successfully", booking)

    # ── Complete (admin) ────────────────────────────────────────────

    async def complete_booking(self, actor: Actor, booking_id: str) -> OperationResult[Booking]:
        return await self._run("complete", self._complete_booking, actor, booking_id)

    async def _complete_booking(self, actor: Actor, booking_id: str):
        self._require_admin(actor)
        now = self.clock.now()

        async with self.uow.transaction() as store:
            booking = await _load_live_booking(store, booking_id)
            if booking.status == BookingStatus.COMPLETED:
                raise InvalidStateTransitionError("Booking is already completed")
            assert_booking_transition(booking.status, BookingStatus.COMPLETED)

            booking.status = BookingStatus.COMPLETED
            booking.updated_at = now
            append_event(store, booking, actor, BookingEventType.COMPLETED, now)

        logger.info("booking_completed", booking_id=booking.id, actor_id=actor.id)
        return OperationResult.ok("Booking marked as completed", booking)

    # ── Remove (admin, soft delete) ─────────────────────────────────

    async def remove_booking(self, actor: Actor, booking_id: str) -> OperationResult[Booking]:
        return await self._run("remove", self._remove_booking, actor, booking_id)

    async def _remove_booking(self, actor: Actor, booking_id: str):
        self._require_admin(actor)
        now = self.clock.now()

        async with self.uow.transaction() as store:
            booking = await store.get_booking(booking_id, for_update=True)
            if booking is None:
                raise NotFoundError("booking", booking_id)
            if booking.is_removed:
                raise InvalidStateTransitionError("Booking has already been removed")

            previous_status = booking.status
            booking.deleted_at = now
            booking.deleted_by = actor.id
            if previous_status == BookingStatus.ACTIVE:
                booking.status = BookingStatus.CANCELLED
                booking.cancelled_at = now
                booking.cancelled_by = actor.id
                booking.cancel_reason = REMOVAL_CANCEL_REASON
            booking.updated_at = now

            append_event(
                store,
                booking,
                actor,
                BookingEventType.REMOVED,
                now,
                payload={
                    "previous_status": previous_status.value,
                    "forced_cancel": previous_status == BookingStatus.ACTIVE,
                },
            )

        logger.info(
            "booking_removed",
            booking_id=booking.id,
            actor_id=actor.id,
            previous_status=previous_status.value,
        )
        return OperationResult.ok("Booking removed", booking)

    # ── Auto-complete sweep ─────────────────────────────────────────

    async def auto_complete_bookings(self, actor: Optional[Actor] = None) -> OperationResult[int]:
        return await self._run("auto_complete", self._auto_complete_bookings, actor or Actor.system())

    async def _auto_complete_bookings(self, actor: Actor):
        self._require_system_or_admin(actor)
        now = self.clock.now()

        async with self.uow.transaction() as store:
            expired = await store.expired_active_bookings(now)
            for booking in expired:
                booking.status = BookingStatus.COMPLETED
                booking.updated_at = now
                append_event(
                    store,
                    booking,
                    actor,
                    BookingEventType.COMPLETED,
                    now,
                    note=AUTO_COMPLETE_NOTE,
                )

        if expired:
            auto_completed_bookings.inc(len(expired))
            logger.info("bookings_auto_completed", count=len(expired))
        return OperationResult.ok(f"{len(expired)} booking(s) auto-completed", len(expired))

    # ── Queries ─────────────────────────────────────────────────────

    async def list_my_bookings(
        self,
        actor: Actor,
        status: Optional[BookingStatus] = None,
    ) -> OperationResult[list[Booking]]:
        return await self._run("list_mine", self._list_my_bookings, actor, status)

    async def _list_my_bookings(self, actor: Actor, status: Optional[BookingStatus]):
        """Every booking the actor owns, newest first, until an admin removes it."""
        async with self.uow.read() as store:
            bookings = await store.bookings_for_owner(actor.id, status)
        return OperationResult.ok(f"{len(bookings)} booking(s)", bookings)

    async def list_all_bookings(
        self,
        actor: Actor,
        include_removed: bool = False,
    ) -> OperationResult[list[Booking]]:
        return await self._run("list_all", self._list_all_bookings, actor, include_removed)

    async def _list_all_bookings(self, actor: Actor, include_removed: bool):
        self._require_admin(actor)
        async with self.uow.read() as store:
            bookings = await store.all_bookings(include_removed)
        return OperationResult.ok(f"{len(bookings)} booking(s)", bookings)

    async def calendar(self, oven_id: Optional[int] = None) -> OperationResult[list[CalendarEntry]]:
        return await self._run("calendar", self._calendar, oven_id)

    async def _calendar(self, oven_id: Optional[int]):
        async with self.uow.read() as store:
            rows = await store.calendar_rows(oven_id)

        entries = [
            CalendarEntry(
                id=booking.id,
                oven_id=booking.oven_id,
                oven_name=oven_name,
                owner_id=booking.owner_id,
                owner_name=owner_name,
                start=booking.start_date,
                end=booking.end_date,
                purpose=booking.purpose,
            )
            for booking, oven_name, owner_name in rows
        ]
        return OperationResult.ok(f"{len(entries)} booking(s)", entries)

    async def get_booking_history(self, actor: Actor, booking_id: str) -> OperationResult[list[BookingEvent]]:
        return await self._run("history", self._get_booking_history, actor, booking_id)

    async def _get_booking_history(self, actor: Actor, booking_id: str):
        async with self.uow.read() as store:
            booking = await store.get_booking(booking_id)
            if booking is None:
                raise NotFoundError("booking", booking_id)
            _assert_can_manage(actor, booking, "view")
            events = await store.events_for(booking_id)
        return OperationResult.ok(f"{len(events)} event(s)", events)
