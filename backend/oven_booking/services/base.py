"""
Shared plumbing for the engine services: unit of work, clock, limits, and the
boundary that turns rejections into results.
"""

import time
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from oven_booking.core.clock import Clock, SystemClock
from oven_booking.core.config import get_settings
from oven_booking.core.exceptions import AuthorizationError, BookingRejection
from oven_booking.core.logging import get_logger
from oven_booking.core.metrics import booking_operation_latency, record_operation
from oven_booking.db.unit_of_work import UnitOfWork
from oven_booking.domain.actor import Actor
from oven_booking.domain.results import OperationResult
from oven_booking.domain.rules import BookingLimits

logger = get_logger(__name__)

T = TypeVar("T")


class EngineService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Optional[Clock] = None,
        limits: Optional[BookingLimits] = None,
    ):
        self.uow = UnitOfWork(session_factory)
        self.clock = clock or SystemClock()
        self.limits = limits or BookingLimits.from_settings(get_settings())

    async def _run(
        self,
        operation: str,
        fn: Callable[..., Awaitable[OperationResult[T]]],
        *args,
        **kwargs,
    ) -> OperationResult[T]:
        """
        Execute one engine operation.

        Rejections are expected outcomes: logged at info, returned as a failed
        result. Store failures are logged as errors and reported generically.
        Nothing is retried here; a caller may retry a generic failure.
        """
        started = time.perf_counter()
        try:
            result = await fn(*args, **kwargs)
        except BookingRejection as exc:
            logger.info(
                "booking_rejected",
                operation=operation,
                error_code=exc.error_code.value,
                reason=exc.message,
            )
            record_operation(operation, exc.error_code.value.lower())
            return OperationResult.rejected(exc)
        except SQLAlchemyError as exc:
            logger.error("booking_operation_failed", operation=operation, error=str(exc), exc_info=True)
            record_operation(operation, "error")
            return OperationResult.failed()
        finally:
            booking_operation_latency.labels(operation=operation).observe(time.perf_counter() - started)

        record_operation(operation, "success")
        return result

    @staticmethod
    def _require_admin(actor: Actor) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Admin access required")

    @staticmethod
    def _require_system_or_admin(actor: Actor) -> None:
        """Scheduled sweeps run as SYSTEM; people need the admin role."""
        if not (actor.is_system or actor.is_admin):
            raise AuthorizationError("Admin access required")
