"""
Pytest fixtures: a throwaway database per test, a frozen clock, the engine
services wired to both, and an HTTP client against the real app.

Each test gets its own SQLite file so sessions opened by different services
see each other's commits, the way they would against Postgres. SQLite has no
row locks, so every transaction opens with BEGIN IMMEDIATE and holds the
database write lock until it ends; concurrent writers queue the way they do
on a locked oven or user row.
"""

import os

# Must be set before the app (and its cached settings) are imported
os.environ["REDIS_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from oven_booking.api.deps import get_clock, get_sessions
from oven_booking.core.clock import FrozenClock
from oven_booking.db.base import Base
from oven_booking.db.session import make_session_factory
from oven_booking.domain.actor import Actor
from oven_booking.main import app
from oven_booking.models import Booking, BookingEvent, Oven, OvenStatus, OvenType, User, UserRole, UserStatus
from oven_booking.services.booking_service import BookingService
from oven_booking.services.oven_service import OvenService
from oven_booking.services.user_service import UserService

# The day before every scenario booking
START_OF_TEST = datetime(2023, 12, 31, 0, 0, tzinfo=timezone.utc)


@dataclass
class Lab:
    """Seeded actors and ovens shared by most tests."""

    admin: Actor
    alice: Actor
    bob: Actor
    carol: Actor
    o1: int
    o2: int


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create tables in a fresh database file, yield a session factory, then dispose."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ovens.db'}", echo=False)

    @event.listens_for(engine.sync_engine, "connect")
    def _manual_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield make_session_factory(engine)

    await engine.dispose()


@pytest_asyncio.fixture
async def clock() -> FrozenClock:
    return FrozenClock(START_OF_TEST)


@pytest_asyncio.fixture
async def lab(session_factory) -> Lab:
    """Admin, two approved users, one pending user, and two ovens."""
    people = {
        "admin": User(name="Admin", email="admin@example.org", role=UserRole.ADMIN, status=UserStatus.APPROVED),
        "alice": User(name="Alice", email="alice@example.org", status=UserStatus.APPROVED),
        "bob": User(name="Bob", email="bob@example.org", status=UserStatus.APPROVED),
        "carol": User(name="Carol", email="carol@example.org", status=UserStatus.PENDING),
    }
    o1 = Oven(name="O1", type=OvenType.NON_AQUEOUS, status=OvenStatus.AVAILABLE, max_temp=200)
    o2 = Oven(name="O2", type=OvenType.AQUEOUS, status=OvenStatus.AVAILABLE, max_temp=120)

    async with session_factory() as session, session.begin():
        session.add_all([*people.values(), o1, o2])

    return Lab(
        admin=Actor(id=people["admin"].id, role=UserRole.ADMIN),
        alice=Actor(id=people["alice"].id),
        bob=Actor(id=people["bob"].id),
        carol=Actor(id=people["carol"].id),
        o1=o1.id,
        o2=o2.id,
    )


@pytest_asyncio.fixture
async def booking_service(session_factory, clock) -> BookingService:
    return BookingService(session_factory, clock=clock)


@pytest_asyncio.fixture
async def oven_service(session_factory, clock) -> OvenService:
    return OvenService(session_factory, clock=clock)


@pytest_asyncio.fixture
async def user_service(session_factory, clock) -> UserService:
    return UserService(session_factory, clock=clock)


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, clock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose services use the test database and the frozen clock."""
    app.dependency_overrides[get_sessions] = lambda: session_factory
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def headers_for(actor: Actor) -> dict:
    return {"X-User-Id": str(actor.id)}


async def count_rows(session_factory, model) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


async def count_bookings(session_factory) -> int:
    return await count_rows(session_factory, Booking)


async def count_events(session_factory) -> int:
    return await count_rows(session_factory, BookingEvent)
