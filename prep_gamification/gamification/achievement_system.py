"""
Achievement System

Fixed catalog of one-time achievements across categories:
- Getting started (first quiz, voice practice, session)
- Volume (question counts)
- Scores (perfect scores, high averages)
- Streaks (3, 7, 14, 30 days)
- Progress (study topics)
- Special (companies, time of day, improvement)

Features:
- Conditions are pure predicates over a statistics snapshot
- Unlocks are insert-if-absent, so repeated or concurrent checks never
  return the same achievement twice
- Progress tracking for locked count-based achievements
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional
import logging

from prep_gamification.db import queries
from prep_gamification.models.achievement import (
    AchievementCategory,
    AchievementDefinition,
    AchievementStatus,
)
from prep_gamification.utils.datetime_helpers import local_hour

logger = logging.getLogger(__name__)

IMPROVEMENT_THRESHOLD = 10


def _achievement(id, name, description, icon, xp_reward, category) -> AchievementDefinition:
    return AchievementDefinition(
        id=id,
        name=name,
        description=description,
        icon=icon,
        xp_reward=xp_reward,
        category=category,
    )


_C = AchievementCategory

ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    # Getting started
    _achievement("first_quiz", "First Steps", "Complete your first quiz question", "🎯", 25, _C.GETTING_STARTED),
    _achievement("first_voice", "Speak Up", "Complete your first voice practice", "🎤", 25, _C.GETTING_STARTED),
    _achievement("first_session", "Session Starter", "Complete your first practice session", "📝", 25, _C.GETTING_STARTED),

    # Volume
    _achievement("ten_questions", "Getting Warmed Up", "Answer 10 questions", "🔥", 50, _C.VOLUME),
    _achievement("fifty_questions", "Dedicated Learner", "Answer 50 questions", "📚", 100, _C.VOLUME),
    _achievement("hundred_questions", "Question Machine", "Answer 100 questions", "⚡", 200, _C.VOLUME),
    _achievement("five_hundred_qs", "Interview Warrior", "Answer 500 questions", "🏆", 500, _C.VOLUME),

    # Scores
    _achievement("perfect_score", "Nailed It", "Score 100 on a question", "💯", 50, _C.SCORES),
    _achievement("three_perfect", "Hat Trick", "Score 100 on 3 questions", "🎩", 100, _C.SCORES),
    _achievement("avg_above_80", "High Performer", "Average score above 80 (10+ questions)", "⭐", 75, _C.SCORES),
    _achievement("avg_above_90", "Elite Performer", "Average score above 90 (20+ questions)", "🌟", 150, _C.SCORES),

    # Streaks
    _achievement("streak_3", "Three-peat", "Maintain a 3-day streak", "🔥", 50, _C.STREAKS),
    _achievement("streak_7", "Full Week", "Maintain a 7-day streak", "🗓️", 100, _C.STREAKS),
    _achievement("streak_14", "Two Weeks Strong", "Maintain a 14-day streak", "💪", 200, _C.STREAKS),
    _achievement("streak_30", "Monthly Master", "Maintain a 30-day streak", "👑", 500, _C.STREAKS),

    # Progress
    _achievement("first_topic", "Topic Explorer", "Complete your first study topic", "📖", 25, _C.PROGRESS),
    _achievement("all_topics", "Completionist", "Complete all topics in a study plan", "🏅", 300, _C.PROGRESS),

    # Special
    _achievement("multi_company", "Playing the Field", "Practice for 3 different companies", "🎯", 100, _C.SPECIAL),
    _achievement("night_owl", "Night Owl", "Practice after midnight", "🦉", 25, _C.SPECIAL),
    _achievement("early_bird", "Early Bird", "Practice before 7 AM", "🐦", 25, _C.SPECIAL),
    _achievement("improvement_10", "Growth Mindset", "Improve score by 10+ on a repeated question", "📈", 75, _C.SPECIAL),
)

ACHIEVEMENTS_BY_ID: Dict[str, AchievementDefinition] = {a.id: a for a in ACHIEVEMENTS}


@dataclass
class AchievementStats:
    """Snapshot of everything achievement conditions look at"""
    quiz_attempts: int = 0
    voice_attempts: int = 0
    flashcard_attempts: int = 0
    total_attempts: int = 0
    average_score: float = 0.0
    perfect_scores: int = 0
    sessions_completed: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    topics_completed: int = 0
    all_topics_complete: bool = False
    unique_companies: int = 0
    latest_hour: Optional[int] = None
    has_improvement: bool = False


def _hour_between(start: int, end: int) -> Callable[[AchievementStats], bool]:
    return lambda s: s.latest_hour is not None and start <= s.latest_hour < end


CONDITIONS: Dict[str, Callable[[AchievementStats], bool]] = {
    "first_quiz": lambda s: s.quiz_attempts >= 1,
    "first_voice": lambda s: s.voice_attempts >= 1,
    "first_session": lambda s: s.sessions_completed >= 1,
    "ten_questions": lambda s: s.total_attempts >= 10,
    "fifty_questions": lambda s: s.total_attempts >= 50,
    "hundred_questions": lambda s: s.total_attempts >= 100,
    "five_hundred_qs": lambda s: s.total_attempts >= 500,
    "perfect_score": lambda s: s.perfect_scores >= 1,
    "three_perfect": lambda s: s.perfect_scores >= 3,
    "avg_above_80": lambda s: s.average_score >= 80 and s.total_attempts >= 10,
    "avg_above_90": lambda s: s.average_score >= 90 and s.total_attempts >= 20,
    "streak_3": lambda s: s.current_streak >= 3,
    "streak_7": lambda s: s.current_streak >= 7,
    "streak_14": lambda s: s.current_streak >= 14,
    "streak_30": lambda s: s.current_streak >= 30,
    "first_topic": lambda s: s.topics_completed >= 1,
    "all_topics": lambda s: s.all_topics_complete,
    "multi_company": lambda s: s.unique_companies >= 3,
    "night_owl": _hour_between(0, 5),
    "early_bird": _hour_between(5, 7),
    "improvement_10": lambda s: s.has_improvement,
}

# Count-based achievements: id -> (stats field, required value)
PROGRESS_TARGETS: Dict[str, tuple[str, int]] = {
    "first_quiz": ("quiz_attempts", 1),
    "first_voice": ("voice_attempts", 1),
    "first_session": ("sessions_completed", 1),
    "ten_questions": ("total_attempts", 10),
    "fifty_questions": ("total_attempts", 50),
    "hundred_questions": ("total_attempts", 100),
    "five_hundred_qs": ("total_attempts", 500),
    "perfect_score": ("perfect_scores", 1),
    "three_perfect": ("perfect_scores", 3),
    "streak_3": ("current_streak", 3),
    "streak_7": ("current_streak", 7),
    "streak_14": ("current_streak", 14),
    "streak_30": ("current_streak", 30),
    "first_topic": ("topics_completed", 1),
    "multi_company": ("unique_companies", 3),
}


async def build_stats(user_id: str) -> AchievementStats:
    """Recompute the statistics snapshot from the Attempt Log and stored state"""
    totals = await queries.get_attempt_totals(user_id)
    streak = await queries.get_user_streak(user_id)
    topics = await queries.get_topic_totals(user_id)
    latest = await queries.get_latest_attempt_time(user_id)

    return AchievementStats(
        quiz_attempts=totals["quiz_attempts"],
        voice_attempts=totals["voice_attempts"],
        flashcard_attempts=totals["flashcard_attempts"],
        total_attempts=totals["total_attempts"],
        average_score=totals["average_score"],
        perfect_scores=totals["perfect_scores"],
        sessions_completed=await queries.count_completed_sessions(user_id),
        current_streak=streak["current_streak"],
        longest_streak=streak["longest_streak"],
        topics_completed=topics["topics_completed"],
        all_topics_complete=topics["all_topics_complete"],
        unique_companies=await queries.count_unique_companies(user_id),
        latest_hour=local_hour(latest),
        has_improvement=await queries.has_score_improvement(user_id, IMPROVEMENT_THRESHOLD),
    )


def evaluate_conditions(
    stats: AchievementStats,
    exclude: Iterable[str] = ()
) -> List[AchievementDefinition]:
    """Catalog entries whose condition holds, skipping ids in exclude (catalog order)"""
    excluded = set(exclude)
    return [
        achievement for achievement in ACHIEVEMENTS
        if achievement.id not in excluded and CONDITIONS[achievement.id](stats)
    ]


async def check_and_unlock(user_id: str) -> List[AchievementDefinition]:
    """
    Unlock every achievement the user now qualifies for

    Never raises: achievements are secondary to recording practice, so
    failures are logged and treated as "nothing new".

    Args:
        user_id: User identifier

    Returns:
        Achievements whose unlock row was created by this call. XP rewards
        are not granted here; the caller credits them.
    """
    try:
        unlocked_rows = await queries.get_user_achievement_unlocks(user_id)
        stats = await build_stats(user_id)
    except Exception as e:
        logger.error(f"Failed to compute achievement stats for user {user_id}: {e}", exc_info=True)
        return []

    already_unlocked = {row["achievement_id"] for row in unlocked_rows}
    newly_unlocked = []

    for achievement in evaluate_conditions(stats, exclude=already_unlocked):
        try:
            created = await queries.unlock_achievement(user_id, achievement.id)
        except Exception as e:
            logger.error(f"Failed to unlock {achievement.id} for user {user_id}: {e}")
            continue

        if created:
            newly_unlocked.append(achievement)
            logger.info(
                f"User {user_id} unlocked achievement: {achievement.id} "
                f"({achievement.name}) +{achievement.xp_reward} XP"
            )

    return newly_unlocked


async def get_user_achievements(user_id: str) -> List[Dict[str, any]]:
    """
    Full catalog annotated with the user's unlock state

    Returns:
        [
            {
                'id': str,
                'name': str,
                'description': str,
                'icon': str,
                'xp_reward': int,
                'category': str,
                'unlocked': bool,
                'unlocked_at': datetime | None
            }
        ]
    """
    unlocked_rows = await queries.get_user_achievement_unlocks(user_id)
    unlocked_at = {row["achievement_id"]: row["unlocked_at"] for row in unlocked_rows}

    return [
        AchievementStatus(
            **achievement.model_dump(),
            unlocked=achievement.id in unlocked_at,
            unlocked_at=unlocked_at.get(achievement.id),
        ).model_dump()
        for achievement in ACHIEVEMENTS
    ]


def get_achievement_progress(achievement_id: str, stats: AchievementStats) -> Optional[Dict[str, int]]:
    """
    Progress toward a count-based achievement

    Returns:
        {'current': int, 'required': int, 'percentage': int}, or None when the
        achievement has no count to track (averages, time of day, etc.)
    """
    target = PROGRESS_TARGETS.get(achievement_id)
    if target is None:
        return None

    field, required = target
    current = getattr(stats, field)

    return {
        "current": current,
        "required": required,
        "percentage": min(100, current * 100 // required),
    }
