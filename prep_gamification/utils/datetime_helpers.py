"""
Standardized Date/Time Handling Utilities

CRITICAL RULES:
- Always store datetimes in DB as UTC (use to_utc())
- Calendar days (streaks, "first practice today", weekly stats) are
  evaluated in PRACTICE_TIMEZONE
- Never mix naive and aware datetimes
"""

import logging
from datetime import datetime, date, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from prep_gamification.config import PRACTICE_TIMEZONE

logger = logging.getLogger(__name__)

UTC = ZoneInfo("UTC")


def practice_timezone() -> ZoneInfo:
    """Timezone that defines a practice calendar day"""
    try:
        return ZoneInfo(PRACTICE_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.error(f"Invalid PRACTICE_TIMEZONE '{PRACTICE_TIMEZONE}': {e}")
        return UTC


def now_utc() -> datetime:
    """
    Get current datetime in UTC (timezone-aware)

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(UTC)


def practice_today(now: Optional[datetime] = None) -> date:
    """Today's date in the practice timezone"""
    now = now or now_utc()
    return to_utc(now).astimezone(practice_timezone()).date()


def to_utc(dt: datetime) -> datetime:
    """
    Convert datetime to UTC for database storage

    Naive datetimes are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        logger.debug(f"Received naive datetime, assuming UTC: {dt}")
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def start_of_day(day: date) -> datetime:
    """UTC instant at which `day` begins in the practice timezone"""
    local_midnight = datetime.combine(day, time.min, tzinfo=practice_timezone())
    return local_midnight.astimezone(UTC)


def start_of_week(day: date) -> datetime:
    """
    UTC instant at which the week containing `day` begins

    Weeks start on Monday, matching Postgres date_trunc('week', ...).
    """
    monday = day - timedelta(days=day.weekday())
    return start_of_day(monday)


def local_hour(dt: Optional[datetime]) -> Optional[int]:
    """Hour of day (0-23) of `dt` in the practice timezone"""
    if dt is None:
        return None
    return to_utc(dt).astimezone(practice_timezone()).hour
