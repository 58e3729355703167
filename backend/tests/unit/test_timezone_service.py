"""Wall-clock conversions for weekly rules."""

from datetime import date

import pytest

from lessonbook.core.exceptions import ValidationException
from lessonbook.core.timezone_service import TimezoneService
from tests.utils.builders import utc


def test_winter_wall_clock():
    assert TimezoneService.local_minutes_to_utc(date(2026, 1, 7), 540, "Europe/Berlin") == utc(
        2026, 1, 7, 8
    )


def test_end_of_day_rolls_to_next_midnight():
    assert TimezoneService.local_minutes_to_utc(date(2026, 1, 7), 1440, "Europe/Berlin") == utc(
        2026, 1, 7, 23
    )


def test_spring_forward_gap_shifts_forward():
    # 02:30 does not exist in Berlin on 2026-03-29; it reads as 03:30 CEST
    assert TimezoneService.local_minutes_to_utc(date(2026, 3, 29), 150, "Europe/Berlin") == utc(
        2026, 3, 29, 1, 30
    )


def test_fall_back_fold_takes_first_occurrence():
    assert TimezoneService.local_minutes_to_utc(date(2026, 10, 25), 150, "Europe/Berlin") == utc(
        2026, 10, 25, 0, 30
    )


def test_unknown_timezone_is_rejected():
    with pytest.raises(ValidationException) as exc_info:
        TimezoneService.require_timezone("Mars/Olympus")
    assert exc_info.value.code == "INVALID_TIMEZONE"


def test_lookup_falls_back_to_default():
    assert TimezoneService.get_timezone("Mars/Olympus").zone == TimezoneService.DEFAULT_TIMEZONE
