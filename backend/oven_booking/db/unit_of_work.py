"""
Unit of work and the booking store it hands out.

CONCURRENCY STRATEGY: Pessimistic row locks inside one transaction
==================================================================

Problem:
  Two users request overlapping slots on the same oven at the same time.
  Both read "no overlap", both insert. Result: double-booked oven.
  The same write-skew hits the per-user active-booking cap.

Solution:
  Every read-validate-write sequence runs inside UnitOfWork.transaction(),
  and the validation reads are guarded by SELECT ... FOR UPDATE on a parent row:

  - Overlap: the oven row is locked before querying its bookings, so all
    writers for one oven are serialized. The second writer re-runs its
    overlap query after the first commits and sees the new row.
  - Capacity: the owner's user row is locked before counting their active
    bookings.

  Isolation is READ COMMITTED, so a writer that waited on a lock reads the
  rows the previous holder committed.

Lock order (always acquired in this sequence to avoid deadlocks):
  user row -> oven rows (ascending id) -> booking rows (ascending id)
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Iterable, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from oven_booking.models.booking import Booking, BookingStatus
from oven_booking.models.booking_event import BookingEvent
from oven_booking.models.oven import Oven
from oven_booking.models.user import User, UserStatus


class BookingStore:
    """Transactional repository over users, ovens, bookings and events."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user(self, user_id: int, for_update: bool = False) -> Optional[User]:
        query = select(User).where(User.id == user_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_oven(self, oven_id: int, for_update: bool = False) -> Optional[Oven]:
        query = select(Oven).where(Oven.id == oven_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def lock_ovens(self, oven_ids: Iterable[int]) -> dict[int, Oven]:
        """Lock several oven rows in ascending id order."""
        ovens = {}
        for oven_id in sorted(set(oven_ids)):
            oven = await self.get_oven(oven_id, for_update=True)
            if oven is not None:
                ovens[oven_id] = oven
        return ovens

    async def get_booking(self, booking_id: str, for_update: bool = False) -> Optional[Booking]:
        query = select(Booking).where(Booking.id == booking_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def count_active_bookings(self, owner_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(Booking)
            .where(
                Booking.owner_id == owner_id,
                Booking.status == BookingStatus.ACTIVE,
                Booking.deleted_at.is_(None),
            )
        )
        return result.scalar_one()

    async def find_overlapping_booking(
        self,
        oven_id: int,
        start_date: datetime,
        end_date: datetime,
        exclude_id: Optional[str] = None,
    ) -> Optional[Booking]:
        """First active booking on the oven whose half-open interval intersects."""
        query = select(Booking).where(
            Booking.oven_id == oven_id,
            Booking.status == BookingStatus.ACTIVE,
            Booking.deleted_at.is_(None),
            Booking.start_date < end_date,
            Booking.end_date > start_date,
        )
        if exclude_id is not None:
            query = query.where(Booking.id != exclude_id)
        result = await self.session.execute(query.order_by(Booking.start_date).limit(1))
        return result.scalar_one_or_none()

    async def active_bookings_on_oven(self, oven_id: int) -> list[Booking]:
        result = await self.session.execute(
            select(Booking)
            .where(
                Booking.oven_id == oven_id,
                Booking.status == BookingStatus.ACTIVE,
                Booking.deleted_at.is_(None),
            )
            .order_by(Booking.id)
            .with_for_update()
        )
        return list(result.scalars().all())

    async def expired_active_bookings(self, now: datetime) -> list[Booking]:
        result = await self.session.execute(
            select(Booking)
            .where(
                Booking.status == BookingStatus.ACTIVE,
                Booking.deleted_at.is_(None),
                Booking.end_date < now,
            )
            .order_by(Booking.id)
            .with_for_update()
        )
        return list(result.scalars().all())

    async def oven_has_history(self, oven_id: int) -> bool:
        result = await self.session.execute(
            select(Booking.id).where(Booking.oven_id == oven_id).limit(1)
        )
        return result.first() is not None

    def add(self, entity) -> None:
        self.session.add(entity)

    async def delete(self, entity) -> None:
        await self.session.delete(entity)

    async def flush(self) -> None:
        await self.session.flush()

    async def events_for(self, booking_id: str) -> list[BookingEvent]:
        result = await self.session.execute(
            select(BookingEvent)
            .where(BookingEvent.booking_id == booking_id)
            .order_by(BookingEvent.id)
        )
        return list(result.scalars().all())

    # ── Read models ─────────────────────────────────────────────────

    async def bookings_for_owner(
        self,
        owner_id: int,
        status: Optional[BookingStatus] = None,
    ) -> list[Booking]:
        """Non-deleted bookings of one owner, newest first."""
        query = (
            select(Booking)
            .where(Booking.owner_id == owner_id, Booking.deleted_at.is_(None))
            .order_by(Booking.created_at.desc(), Booking.start_date.desc())
        )
        if status is not None:
            query = query.where(Booking.status == status)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def all_bookings(self, include_removed: bool = False) -> list[Booking]:
        query = select(Booking).order_by(Booking.created_at.desc(), Booking.start_date.desc())
        if not include_removed:
            query = query.where(Booking.deleted_at.is_(None))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def calendar_rows(self, oven_id: Optional[int] = None) -> list[tuple[Booking, str, str]]:
        """Active bookings with their oven and owner names, soonest first."""
        query = (
            select(Booking, Oven.name, User.name)
            .join(Oven, Oven.id == Booking.oven_id)
            .join(User, User.id == Booking.owner_id)
            .where(Booking.status == BookingStatus.ACTIVE, Booking.deleted_at.is_(None))
            .order_by(Booking.start_date.asc())
        )
        if oven_id is not None:
            query = query.where(Booking.oven_id == oven_id)
        result = await self.session.execute(query)
        return [tuple(row) for row in result.all()]

    async def ovens_with_current_booking(self, now: datetime) -> list[tuple[Oven, Optional[Booking]]]:
        """Every oven, ordered by id, with the active booking covering `now` if any."""
        result = await self.session.execute(
            select(Oven, Booking)
            .outerjoin(
                Booking,
                and_(
                    Booking.oven_id == Oven.id,
                    Booking.status == BookingStatus.ACTIVE,
                    Booking.deleted_at.is_(None),
                    Booking.start_date <= now,
                    Booking.end_date > now,
                ),
            )
            .order_by(Oven.id, Booking.start_date)
        )
        board: dict[int, tuple[Oven, Optional[Booking]]] = {}
        for oven, booking in result.all():
            board.setdefault(oven.id, (oven, booking))
        return list(board.values())

    async def oven_name_taken(self, name: str) -> bool:
        result = await self.session.execute(select(Oven.id).where(Oven.name == name).limit(1))
        return result.first() is not None

    async def find_user_by_contact(
        self,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        exclude_id: Optional[int] = None,
    ) -> Optional[User]:
        """First user other than `exclude_id` holding the given email or phone."""
        matches = []
        if email:
            matches.append(User.email == email)
        if phone:
            matches.append(User.phone == phone)
        if not matches:
            return None
        query = select(User).where(or_(*matches))
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        result = await self.session.execute(query.order_by(User.id).limit(1))
        return result.scalar_one_or_none()

    async def users_with_booking_counts(self, status: Optional[UserStatus] = None) -> list[tuple[User, int]]:
        booking_count = (
            select(func.count(Booking.id))
            .where(Booking.owner_id == User.id)
            .correlate(User)
            .scalar_subquery()
        )
        query = select(User, booking_count).order_by(User.created_at.desc(), User.id.desc())
        if status is not None:
            query = query.where(User.status == status)
        result = await self.session.execute(query)
        return [(user, count) for user, count in result.all()]


class UnitOfWork:
    """
    The engine's only storage dependency.

    Usage:
        async with uow.transaction() as store:
            ...  # commit on normal exit, rollback on any exception
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[BookingStore]:
        async with self._session_factory() as session:
            async with session.begin():
                yield BookingStore(session)

    @asynccontextmanager
    async def read(self) -> AsyncIterator[BookingStore]:
        """Read-only access; nothing is committed."""
        async with self._session_factory() as session:
            yield BookingStore(session)
