"""
Practice Streak Tracking

One consecutive-day streak per user, driven by the calendar-day delta
between the last practice day and today:
- no prior practice: streak starts at 1
- same day: no change (repeated calls are idempotent)
- next day: streak + 1
- gap of 2+ days: streak resets to 1

The streak length selects an XP multiplier (1.0x up to 2.0x at 30 days).
"""

from typing import Dict, Optional, Tuple
from datetime import date, datetime
import logging

from prep_gamification.db import queries
from prep_gamification.utils.datetime_helpers import practice_today

logger = logging.getLogger(__name__)

# (min_days, multiplier), highest minimum first
STREAK_MULTIPLIER_TIERS: tuple[tuple[int, float], ...] = (
    (30, 2.0),
    (14, 1.75),
    (7, 1.5),
    (3, 1.25),
    (0, 1.0),
)

STARTED = "started"
SAME_DAY = "same_day"
CONTINUED = "continued"
RESET = "reset"


def multiplier_for(streak_days: int) -> float:
    """XP multiplier for a streak length; the first tier whose minimum is met wins"""
    for min_days, multiplier in STREAK_MULTIPLIER_TIERS:
        if streak_days >= min_days:
            return multiplier
    return 1.0


def advance_streak(state: Dict[str, any], today: date) -> Tuple[Dict[str, any], str]:
    """
    Apply one practice day to a streak state

    Args:
        state: {'current_streak', 'longest_streak', 'last_practice_date'}
        today: Calendar day of the practice event

    Returns:
        (new_state, transition) where transition is one of
        started / same_day / continued / reset
    """
    current = state.get("current_streak") or 0
    longest = state.get("longest_streak") or 0
    last_date = state.get("last_practice_date")

    if isinstance(last_date, datetime):
        last_date = last_date.date()

    if last_date is None:
        current = 1
        transition = STARTED
    else:
        delta = (today - last_date).days
        if delta <= 0:
            # Already counted today (an out-of-order earlier day changes nothing)
            return {
                "current_streak": current,
                "longest_streak": max(longest, current),
                "last_practice_date": last_date,
            }, SAME_DAY
        elif delta == 1:
            current += 1
            transition = CONTINUED
        else:
            current = 1
            transition = RESET

    return {
        "current_streak": current,
        "longest_streak": max(longest, current),
        "last_practice_date": today,
    }, transition


def _streak_message(transition: str, previous_streak: int, current_streak: int) -> str:
    if transition == STARTED:
        return "Streak started! Day 1 🎉"
    if transition == RESET:
        return f"Streak reset. Previous: {previous_streak} days. Starting fresh! Day 1 💪"
    return f"Streak continues! Day {current_streak} 🔥"


async def record_practice(user_id: str, today: Optional[date] = None) -> Dict[str, any]:
    """
    Record that the user practiced on `today`

    The stored row is locked for the read-modify-write, so concurrent calls
    for the same user serialize and same-day calls leave the streak unchanged.

    Args:
        user_id: User identifier
        today: Calendar day of the practice (defaults to today in PRACTICE_TIMEZONE)

    Returns:
        {
            'current_streak': int,
            'longest_streak': int,
            'last_practice_date': date,
            'previous_streak': int,
            'multiplier': float,
            'is_new_day': bool,
            'transition': str,
            'message': str
        }
    """
    if today is None:
        today = practice_today()

    outcome = {}

    def update(stored: Dict[str, any]) -> Dict[str, any]:
        new_state, transition = advance_streak(stored, today)
        outcome["transition"] = transition
        return new_state

    previous, current = await queries.apply_streak_update(user_id, update)
    transition = outcome["transition"]

    if transition == RESET:
        logger.info(
            f"User {user_id} streak broken. Was {previous['current_streak']}, "
            f"last practice {previous['last_practice_date']}"
        )
    elif transition != SAME_DAY:
        logger.info(
            f"Updated streak for user {user_id}: "
            f"{previous['current_streak']} → {current['current_streak']} days"
        )

    return {
        "current_streak": current["current_streak"],
        "longest_streak": current["longest_streak"],
        "last_practice_date": current["last_practice_date"],
        "previous_streak": previous["current_streak"],
        "multiplier": multiplier_for(current["current_streak"]),
        "is_new_day": transition != SAME_DAY,
        "transition": transition,
        "message": _streak_message(transition, previous["current_streak"], current["current_streak"]),
    }


async def get_streak(user_id: str) -> Dict[str, any]:
    """
    Get user's streak without modifying it

    Returns:
        {
            'current_streak': int,
            'longest_streak': int,
            'last_practice_date': date | None,
            'multiplier': float
        }
    """
    streak = await queries.get_user_streak(user_id)
    return {
        "current_streak": streak["current_streak"],
        "longest_streak": streak["longest_streak"],
        "last_practice_date": streak["last_practice_date"],
        "multiplier": multiplier_for(streak["current_streak"]),
    }
