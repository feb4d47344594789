"""
Alembic migration environment for the oven booking schema.

Runs against the synchronous DATABASE_URL_SYNC; the application itself uses
the asyncpg URL.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from oven_booking.core.config import get_settings
from oven_booking.db.base import Base

# Import all models so Alembic sees them in metadata
from oven_booking.models import Booking, BookingEvent, Oven, User  # noqa: F401

config = context.config
settings = get_settings()

config.set_main_option("sqlalchemy.url", settings.DATABASE_URL_SYNC)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit the migration as a SQL script."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(config.get_main_option("sqlalchemy.url"), poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
