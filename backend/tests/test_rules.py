"""
Tests for the pure booking rules and the status state machine.
"""

from datetime import datetime, timedelta, timezone

import pytest

from oven_booking.core.exceptions import InvalidStateTransitionError, ValidationError, WindowExpiredError
from oven_booking.domain.booking_state import assert_booking_transition, can_transition
from oven_booking.domain.rules import (
    BookingInput,
    BookingLimits,
    assert_within_grace_window,
    edit_snapshot,
    intervals_overlap,
    normalize_input,
    normalize_instant,
    validate_booking_input,
    within_grace_window,
)
from oven_booking.models.booking import BookingStatus

NOW = datetime(2023, 12, 31, tzinfo=timezone.utc)
LIMITS = BookingLimits()


def make_input(**overrides) -> BookingInput:
    fields = dict(
        start_date=datetime(2024, 1, 1, 8, tzinfo=timezone.utc),
        end_date=datetime(2024, 1, 1, 12, tzinfo=timezone.utc),
        purpose="Drying samples",
        usage_temp=150,
        flap=20,
    )
    fields.update(overrides)
    return BookingInput(**fields)


def rejection_field(data: BookingInput, **kwargs) -> str:
    with pytest.raises(ValidationError) as exc_info:
        validate_booking_input(data, NOW, LIMITS, **kwargs)
    return exc_info.value.field


def test_valid_input_passes():
    validate_booking_input(make_input(), NOW, LIMITS)


def test_end_must_follow_start():
    start = datetime(2024, 1, 1, 8, tzinfo=timezone.utc)
    assert rejection_field(make_input(start_date=start, end_date=start)) == "end_date"


def test_exactly_seven_days_is_allowed_one_second_more_is_not():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    validate_booking_input(make_input(start_date=start, end_date=start + timedelta(days=7)), NOW, LIMITS)

    with pytest.raises(ValidationError, match="Booking cannot exceed 7 days"):
        validate_booking_input(
            make_input(start_date=start, end_date=start + timedelta(days=7, seconds=1)), NOW, LIMITS
        )


def test_past_start_rejected_unless_check_disabled():
    past = make_input(
        start_date=NOW - timedelta(hours=1),
        end_date=NOW + timedelta(hours=1),
    )
    assert rejection_field(past) == "start_date"
    validate_booking_input(past, NOW, LIMITS, check_start_in_past=False)


def test_purpose_too_short():
    assert rejection_field(make_input(purpose="ab")) == "purpose"


@pytest.mark.parametrize("flap", [-1, 101])
def test_flap_out_of_range(flap):
    assert rejection_field(make_input(flap=flap)) == "flap"


@pytest.mark.parametrize("flap", [0, 100])
def test_flap_bounds_are_inclusive(flap):
    validate_booking_input(make_input(flap=flap), NOW, LIMITS)


def test_usage_temp_must_be_positive():
    assert rejection_field(make_input(usage_temp=0)) == "usage_temp"


def test_first_failure_wins():
    """A reversed interval is reported even when the purpose is also invalid."""
    start = datetime(2024, 1, 1, 8, tzinfo=timezone.utc)
    data = make_input(start_date=start, end_date=start - timedelta(hours=1), purpose="")
    assert rejection_field(data) == "end_date"


def test_naive_datetimes_are_lab_local_time():
    # Asia/Jakarta is UTC+7 with no DST
    assert normalize_instant(datetime(2024, 1, 1, 15, 0), "Asia/Jakarta") == datetime(
        2024, 1, 1, 8, 0, tzinfo=timezone.utc
    )


def test_aware_datetimes_are_converted_to_utc():
    plus_two = timezone(timedelta(hours=2))
    assert normalize_instant(datetime(2024, 1, 1, 10, tzinfo=plus_two), "Asia/Jakarta") == datetime(
        2024, 1, 1, 8, tzinfo=timezone.utc
    )


def test_normalize_input_strips_purpose():
    assert normalize_input(make_input(purpose="  bake  "), LIMITS).purpose == "bake"


def test_half_open_overlap():
    def h(hour):
        return datetime(2024, 1, 1, hour, tzinfo=timezone.utc)

    assert intervals_overlap(h(8), h(12), h(11), h(13))
    assert not intervals_overlap(h(8), h(12), h(12), h(14))
    assert not intervals_overlap(h(12), h(14), h(8), h(12))
    assert intervals_overlap(h(8), h(12), h(9), h(10))


def test_grace_window_is_inclusive_at_fifteen_minutes():
    created = NOW
    assert within_grace_window(created, created + timedelta(minutes=15), LIMITS)
    assert not within_grace_window(created, created + timedelta(minutes=15, seconds=1), LIMITS)


def test_window_expired_message_names_the_action():
    with pytest.raises(WindowExpiredError, match="15-minute cancellation window"):
        assert_within_grace_window(NOW, NOW + timedelta(minutes=20), LIMITS, "cancellation")


def test_edit_snapshot_only_records_changed_fields():
    before = {"purpose": "old", "usage_temp": 100, "start_date": NOW}
    after = {"purpose": "new", "usage_temp": 100, "start_date": NOW + timedelta(hours=1)}

    snapshot = edit_snapshot(before, after)

    assert snapshot["before"] == {"purpose": "old", "start_date": NOW.isoformat()}
    assert snapshot["after"] == {
        "purpose": "new",
        "start_date": (NOW + timedelta(hours=1)).isoformat(),
    }


def test_terminal_statuses_have_no_exits():
    for terminal in (BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.AUTO_CANCELLED):
        for target in BookingStatus:
            assert not can_transition(terminal, target)


def test_active_can_reach_every_terminal_status():
    for target in (BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.AUTO_CANCELLED):
        assert_booking_transition(BookingStatus.ACTIVE, target)


def test_invalid_transition_raises():
    with pytest.raises(InvalidStateTransitionError):
        assert_booking_transition(BookingStatus.CANCELLED, BookingStatus.ACTIVE)
