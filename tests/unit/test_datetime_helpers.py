"""Unit tests for date/time helpers"""
import pytest
from unittest.mock import patch
from datetime import date, datetime, timezone

from prep_gamification.utils.datetime_helpers import (
    UTC,
    local_hour,
    now_utc,
    practice_today,
    start_of_day,
    start_of_week,
    to_utc,
)

HELPERS = 'prep_gamification.utils.datetime_helpers.PRACTICE_TIMEZONE'


def test_now_utc_is_aware():
    assert now_utc().tzinfo is not None
    assert now_utc().utcoffset().total_seconds() == 0


def test_to_utc_assumes_naive_is_utc():
    result = to_utc(datetime(2026, 3, 1, 9, 30))

    assert result == datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def test_start_of_day_utc():
    assert start_of_day(date(2026, 3, 1)) == datetime(2026, 3, 1, tzinfo=UTC)


def test_start_of_day_in_practice_timezone():
    with patch(HELPERS, 'Asia/Tokyo'):
        # Midnight in Tokyo is 15:00 UTC the previous day
        assert start_of_day(date(2026, 3, 1)) == datetime(2026, 2, 28, 15, 0, tzinfo=UTC)


def test_practice_today_crosses_date_line():
    late_utc = datetime(2026, 3, 1, 23, 0, tzinfo=timezone.utc)

    assert practice_today(late_utc) == date(2026, 3, 1)
    with patch(HELPERS, 'Asia/Tokyo'):
        assert practice_today(late_utc) == date(2026, 3, 2)


@pytest.mark.parametrize("day", [
    date(2026, 3, 2),  # Monday
    date(2026, 3, 4),
    date(2026, 3, 8),  # Sunday
])
def test_start_of_week_is_monday(day):
    assert start_of_week(day) == datetime(2026, 3, 2, tzinfo=UTC)


def test_local_hour():
    moment = datetime(2026, 1, 14, 4, 30, tzinfo=timezone.utc)

    assert local_hour(moment) == 4
    assert local_hour(None) is None
    with patch(HELPERS, 'America/New_York'):
        assert local_hour(moment) == 23


def test_invalid_timezone_falls_back_to_utc():
    with patch(HELPERS, 'Not/AZone'):
        assert start_of_day(date(2026, 3, 1)) == datetime(2026, 3, 1, tzinfo=UTC)
