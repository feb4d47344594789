"""
Pure booking rules: no I/O, no session, no clock lookups.

The engine calls these with values it has already loaded inside its
transaction, so the same checks run identically for create and edit.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from oven_booking.core.config import Settings
from oven_booking.core.exceptions import ValidationError, WindowExpiredError

FLAP_MIN = 0
FLAP_MAX = 100


@dataclass(frozen=True)
class BookingLimits:
    max_active_per_user: int = 2
    max_duration: timedelta = timedelta(days=7)
    grace_window: timedelta = timedelta(minutes=15)
    min_purpose_length: int = 3
    lab_timezone: str = "Asia/Jakarta"

    @classmethod
    def from_settings(cls, settings: Settings) -> "BookingLimits":
        return cls(
            max_active_per_user=settings.BOOKING_MAX_ACTIVE_PER_USER,
            max_duration=timedelta(days=settings.BOOKING_MAX_DURATION_DAYS),
            grace_window=timedelta(minutes=settings.BOOKING_GRACE_WINDOW_MINUTES),
            min_purpose_length=settings.BOOKING_MIN_PURPOSE_LENGTH,
            lab_timezone=settings.LAB_TIMEZONE,
        )

    @property
    def grace_minutes(self) -> int:
        return int(self.grace_window.total_seconds() // 60)


@dataclass(frozen=True)
class BookingInput:
    """Requested booking fields, as supplied by create or edit."""

    start_date: datetime
    end_date: datetime
    purpose: str
    usage_temp: int
    flap: int = 0


def normalize_instant(value: datetime, lab_timezone: str) -> datetime:
    """
    Turn an input datetime into an aware UTC instant.

    Values without an offset are wall-clock times in the lab's timezone.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=ZoneInfo(lab_timezone))
    return value.astimezone(timezone.utc)


def normalize_input(data: BookingInput, limits: BookingLimits) -> BookingInput:
    return BookingInput(
        start_date=normalize_instant(data.start_date, limits.lab_timezone),
        end_date=normalize_instant(data.end_date, limits.lab_timezone),
        purpose=(data.purpose or "").strip(),
        usage_temp=data.usage_temp,
        flap=data.flap,
    )


def validate_booking_input(
    data: BookingInput,
    now: datetime,
    limits: BookingLimits,
    check_start_in_past: bool = True,
) -> None:
    """
    Structural validation. First failure wins, in this order:
    interval direction, duration, past start, purpose, flap, temperature.
    """
    if data.end_date <= data.start_date:
        raise ValidationError("End date must be after start date", field="end_date")

    if data.end_date - data.start_date > limits.max_duration:
        days = limits.max_duration.days
        raise ValidationError(f"Booking cannot exceed {days} days", field="end_date")

    if check_start_in_past and data.start_date < now:
        raise ValidationError("Start date cannot be in the past", field="start_date")

    if len(data.purpose) < limits.min_purpose_length:
        raise ValidationError(
            f"Purpose must be at least {limits.min_purpose_length} characters",
            field="purpose",
        )

    if not FLAP_MIN <= data.flap <= FLAP_MAX:
        raise ValidationError(f"Flap must be between {FLAP_MIN} and {FLAP_MAX}", field="flap")

    if data.usage_temp < 1:
        raise ValidationError("Usage temperature must be at least 1°C", field="usage_temp")


def intervals_overlap(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> bool:
    """Half-open overlap: touching endpoints do not conflict."""
    return a_start < b_end and b_start < a_end


def within_grace_window(created_at: datetime, now: datetime, limits: BookingLimits) -> bool:
    return now <= created_at + limits.grace_window


def assert_within_grace_window(
    created_at: datetime,
    now: datetime,
    limits: BookingLimits,
    action: str,
) -> None:
    if not within_grace_window(created_at, now, limits):
        raise WindowExpiredError(action, limits.grace_minutes)


def edit_snapshot(before: dict, after: dict) -> dict:
    """
    Before/after payload restricted to the fields that actually changed.
    Datetimes are rendered as ISO strings so the payload is JSON-safe.
    """
    changed = [key for key in after if before.get(key) != after[key]]

    def render(value):
        return value.isoformat() if isinstance(value, datetime) else value

    return {
        "before": {key: render(before.get(key)) for key in changed},
        "after": {key: render(after[key]) for key in changed},
    }
