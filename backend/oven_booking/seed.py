"""
Idempotent bootstrap data: the lab's two ovens and, when ADMIN_EMAIL is set,
an approved admin account.

Run with: python -m oven_booking.seed  (after `alembic upgrade head`)
"""

import asyncio
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from oven_booking.core.config import get_settings
from oven_booking.core.logging import get_logger, setup_logging
from oven_booking.db.session import dispose_engine, get_session_factory
from oven_booking.models.oven import Oven, OvenStatus, OvenType
from oven_booking.models.user import User, UserRole, UserStatus

logger = get_logger(__name__)

DEFAULT_OVENS = [
    {
        "name": "Oven 1",
        "type": OvenType.NON_AQUEOUS,
        "max_temp": 300,
        "description": "Non-aqueous sample drying oven",
    },
    {
        "name": "Oven 2",
        "type": OvenType.AQUEOUS,
        "max_temp": 200,
        "description": "Aqueous sample drying oven",
    },
]


async def ensure_oven(session: AsyncSession, fields: dict) -> bool:
    result = await session.execute(select(Oven.id).where(Oven.name == fields["name"]))
    if result.first() is not None:
        return False
    session.add(Oven(status=OvenStatus.AVAILABLE, **fields))
    return True


async def ensure_admin(session: AsyncSession, email: str, name: str) -> bool:
    result = await session.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none() is not None:
        return False
    session.add(
        User(
            name=name,
            email=email,
            role=UserRole.ADMIN,
            status=UserStatus.APPROVED,
        )
    )
    return True


async def seed(session_factory: async_sessionmaker[AsyncSession], admin_email: Optional[str] = None) -> None:
    settings = get_settings()
    admin_email = (admin_email if admin_email is not None else settings.ADMIN_EMAIL).strip().lower()

    async with session_factory() as session, session.begin():
        for fields in DEFAULT_OVENS:
            if await ensure_oven(session, fields):
                logger.info("seed_oven_created", name=fields["name"])

        if admin_email:
            if await ensure_admin(session, admin_email, settings.ADMIN_NAME):
                logger.info("seed_admin_created", email=admin_email)
        else:
            logger.warning("seed_admin_skipped", reason="ADMIN_EMAIL not set")


async def main() -> None:
    setup_logging()
    try:
        await seed(get_session_factory())
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
