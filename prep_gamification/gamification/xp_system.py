"""
XP and Reward Calculation

Turns a single practice event into XP and credits XP to the user.

XP Award Rules:
- Base XP per event: quiz 10, voice 15, flashcard marked known 3,
  flashcard marked needs-practice 1
- Score bonus (quiz/voice only): >=90 +15, >=80 +10, >=70 +5, >=50 +2
- Streak multiplier applied to base + bonus, then floored
- Daily bonus: +25 on the first qualifying event of the calendar day
- Achievement unlocks: fixed reward per achievement, credited by the caller

xp = floor((base + score_bonus) * multiplier) + daily_bonus
"""

import math
from typing import Dict, List, Optional, Union
from datetime import timedelta
import logging

from prep_gamification.db import queries
from prep_gamification.gamification.levels import level_for_xp
from prep_gamification.gamification.streak_system import multiplier_for
from prep_gamification.models.practice import EventType
from prep_gamification.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)

BASE_XP: Dict[EventType, int] = {
    EventType.QUIZ: 10,
    EventType.VOICE: 15,
    EventType.FLASHCARD_KNOWN: 3,
    EventType.FLASHCARD_PRACTICE: 1,
}

# (min_score, bonus), highest minimum first
SCORE_BONUS_TIERS: tuple[tuple[int, int], ...] = (
    (90, 15),
    (80, 10),
    (70, 5),
    (50, 2),
    (0, 0),
)

DAILY_BONUS = 25


def _coerce_event_type(event_type: Union[EventType, str]) -> Optional[EventType]:
    try:
        return EventType(event_type)
    except ValueError:
        return None


def score_bonus_for(score: Optional[float]) -> int:
    """Bonus XP for a 0-100 score; the first tier whose minimum is met wins"""
    if score is None:
        return 0
    for min_score, bonus in SCORE_BONUS_TIERS:
        if score >= min_score:
            return bonus
    return 0


def compute_xp(
    event_type: Union[EventType, str],
    score: Optional[float],
    streak_days: int,
    is_first_qualifying_event_today: bool = False
) -> Dict[str, Union[int, float]]:
    """
    Calculate XP for one practice event

    Unknown event types earn zero base XP instead of failing, so a caller's
    flow is never blocked by the calculator.

    Args:
        event_type: quiz, voice, flashcard_known or flashcard_practice
        score: External 0-100 score (ignored for flashcards)
        streak_days: Streak length in effect before this event
        is_first_qualifying_event_today: Decided by the caller from the Attempt Log

    Returns:
        {
            'xp': int,
            'base': int,
            'score_bonus': int,
            'multiplier': float,
            'daily_bonus': int
        }
    """
    event = _coerce_event_type(event_type)

    base = BASE_XP.get(event, 0) if event else 0
    score_bonus = score_bonus_for(score) if event and event.is_scored else 0
    multiplier = multiplier_for(streak_days)
    daily_bonus = DAILY_BONUS if is_first_qualifying_event_today else 0

    xp = math.floor((base + score_bonus) * multiplier) + daily_bonus

    return {
        "xp": xp,
        "base": base,
        "score_bonus": score_bonus,
        "multiplier": multiplier,
        "daily_bonus": daily_bonus,
    }


async def award_xp(
    user_id: str,
    amount: int,
    source_type: str,
    source_id: Optional[str] = None,
    reason: str = "Practice activity completed"
) -> Dict[str, any]:
    """
    Credit XP to user and check for level up

    The total is incremented atomically in the database; the level is
    derived from the total the database returns.

    Args:
        user_id: User identifier
        amount: Amount of XP to award
        source_type: Type of activity (quiz, voice, flashcard, achievement)
        source_id: ID of the source activity (optional)
        reason: Human-readable description

    Returns:
        {
            'xp_awarded': int,
            'new_total_xp': int,
            'old_total_xp': int,
            'leveled_up': bool,
            'new_level': int,
            'old_level': int,
            'level_title': str
        }
    """
    if amount <= 0:
        xp_data = await queries.get_user_xp_data(user_id)
        level_info = level_for_xp(xp_data["total_xp"])
        return {
            "xp_awarded": 0,
            "new_total_xp": xp_data["total_xp"],
            "old_total_xp": xp_data["total_xp"],
            "leveled_up": False,
            "new_level": level_info["level"],
            "old_level": level_info["level"],
            "level_title": level_info["title"],
        }

    totals = await queries.increment_user_xp(user_id, amount, source_type, source_id, reason)
    return await _apply_level(user_id, amount, source_type, totals)


async def award_attempt_xp(
    user_id: str,
    amount: int,
    attempt_type: str,
    score: Optional[int],
    reason: str,
    **attempt_fields
) -> Dict[str, any]:
    """
    Log a practice attempt and credit its XP atomically

    attempt_fields are passed through to the Attempt Log (question_text,
    question_category, job_description_hash, session_id).

    Returns:
        award_xp() result plus 'attempt_id'
    """
    totals = await queries.record_attempt_xp(
        user_id, attempt_type, score, amount, reason, **attempt_fields
    )
    result = await _apply_level(user_id, max(amount, 0), attempt_type, totals)
    result["attempt_id"] = totals["attempt_id"]
    return result


async def _apply_level(user_id: str, amount: int, source_type: str, totals: Dict[str, int]) -> Dict[str, any]:
    """Store a level change implied by the new total and build the award result"""
    new_total_xp = totals["total_xp"]
    old_total_xp = totals["previous_total_xp"]

    new_level_info = level_for_xp(new_total_xp)
    old_level = level_for_xp(old_total_xp)["level"]
    new_level = new_level_info["level"]
    leveled_up = new_level > old_level

    if leveled_up:
        await queries.update_user_level(user_id, new_level)
        logger.info(f"User {user_id} leveled up from {old_level} to {new_level} ({new_level_info['title']})!")

    logger.info(
        f"Awarded {amount} XP to user {user_id} for {source_type}. "
        f"Total: {new_total_xp} XP, Level: {new_level}"
    )

    return {
        "xp_awarded": amount,
        "new_total_xp": new_total_xp,
        "old_total_xp": old_total_xp,
        "leveled_up": leveled_up,
        "new_level": new_level,
        "old_level": old_level,
        "level_title": new_level_info["title"],
    }


async def get_user_xp(user_id: str) -> Dict[str, any]:
    """
    Get user's current XP and level information

    Returns:
        {
            'user_id': str,
            'total_xp': int,
            **level_for_xp(total_xp)
        }
    """
    xp_data = await queries.get_user_xp_data(user_id)
    return {
        "user_id": user_id,
        "total_xp": xp_data["total_xp"],
        **level_for_xp(xp_data["total_xp"]),
    }


async def get_xp_history(user_id: str, days: int = 7) -> List[Dict[str, any]]:
    """
    Get recent XP transaction history

    Returns:
        List of XP transactions sorted by date (newest first)
    """
    transactions = await queries.get_xp_transactions(user_id, limit=50)

    cutoff = now_utc() - timedelta(days=days)
    return [t for t in transactions if t["awarded_at"] >= cutoff]
