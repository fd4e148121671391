"""
Database queries - Re-export all functions behind one facade.

All imports like 'from prep_gamification.db import queries' followed by
'queries.increment_user_xp(...)' go through this module, so tests can patch
a single name per query.

Module organization:
- xp.py: XP totals (atomic increment), the XP ledger and attempt logging
- streaks.py: Streak state with row-locked updates
- attempts.py: Attempt Log aggregates
- sessions.py: Practice session lifecycle and history
- progress.py: Study-topic progress per job
- achievements.py: Unlocks and achievement statistics
"""

# XP operations
from prep_gamification.db.queries.xp import (
    get_user_xp_data,
    increment_user_xp,
    record_attempt_xp,
    update_user_level,
    get_xp_transactions,
)

# Streak operations
from prep_gamification.db.queries.streaks import (
    get_user_streak,
    apply_streak_update,
)

# Attempt Log operations
from prep_gamification.db.queries.attempts import (
    count_attempts_since,
    get_activity_since,
    get_category_stats,
    get_weekly_counts,
    get_question_attempt_stats,
)

# Session operations
from prep_gamification.db.queries.sessions import (
    create_session,
    get_session,
    get_open_session_ids,
    add_attempt_to_session,
    close_session,
    get_practice_history,
)

# Progress operations
from prep_gamification.db.queries.progress import (
    save_progress,
    get_progress,
    get_all_progress,
)

# Achievement operations
from prep_gamification.db.queries.achievements import (
    get_user_achievement_unlocks,
    unlock_achievement,
    get_attempt_totals,
    count_completed_sessions,
    get_topic_totals,
    count_unique_companies,
    get_latest_attempt_time,
    has_score_improvement,
)

__all__ = [
    # XP (5 functions)
    "get_user_xp_data",
    "increment_user_xp",
    "record_attempt_xp",
    "update_user_level",
    "get_xp_transactions",

    # Streaks (2 functions)
    "get_user_streak",
    "apply_streak_update",

    # Attempts (5 functions)
    "count_attempts_since",
    "get_activity_since",
    "get_category_stats",
    "get_weekly_counts",
    "get_question_attempt_stats",

    # Sessions (6 functions)
    "create_session",
    "get_session",
    "get_open_session_ids",
    "add_attempt_to_session",
    "close_session",
    "get_practice_history",

    # Progress (3 functions)
    "save_progress",
    "get_progress",
    "get_all_progress",

    # Achievements (8 functions)
    "get_user_achievement_unlocks",
    "unlock_achievement",
    "get_attempt_totals",
    "count_completed_sessions",
    "get_topic_totals",
    "count_unique_companies",
    "get_latest_attempt_time",
    "has_score_improvement",
]
