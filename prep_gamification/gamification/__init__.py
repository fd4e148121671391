"""
Gamification engine for interview practice

This package turns practice events into motivation signals:
- XP rewards and the level table
- Consecutive-day practice streaks with XP multipliers
- One-time achievements with XP rewards
- Weakest-first ordering of a job's practice questions
"""

from prep_gamification.gamification.levels import LEVELS, level_for_xp, is_level_up
from prep_gamification.gamification.xp_system import (
    compute_xp,
    award_xp,
    award_attempt_xp,
    get_user_xp,
    get_xp_history,
)
from prep_gamification.gamification.streak_system import multiplier_for, record_practice, get_streak
from prep_gamification.gamification.achievement_system import (
    ACHIEVEMENTS,
    check_and_unlock,
    get_user_achievements,
)
from prep_gamification.gamification.practice_order import rank_questions

__all__ = [
    "LEVELS",
    "level_for_xp",
    "is_level_up",
    "compute_xp",
    "award_xp",
    "award_attempt_xp",
    "get_user_xp",
    "get_xp_history",
    "multiplier_for",
    "record_practice",
    "get_streak",
    "ACHIEVEMENTS",
    "check_and_unlock",
    "get_user_achievements",
    "rank_questions",
]
