"""Achievement unlocks and the statistics achievements are evaluated on"""
import logging
from datetime import datetime
from typing import Optional
from prep_gamification.db.connection import db

logger = logging.getLogger(__name__)


# ==========================================
# Unlocks
# ==========================================

async def get_user_achievement_unlocks(user_id: str) -> list[dict]:
    """
    Get user's unlocked achievements

    Returns:
        List of {achievement_id, unlocked_at} ordered by unlocked_at DESC
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT achievement_id, unlocked_at
                FROM user_achievements
                WHERE user_id = %s
                ORDER BY unlocked_at DESC
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


async def unlock_achievement(user_id: str, achievement_id: str) -> bool:
    """
    Record an unlock, ignoring duplicates

    Returns True if unlocked (new), False if already unlocked
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO user_achievements (user_id, achievement_id)
                VALUES (%s, %s)
                ON CONFLICT (user_id, achievement_id) DO NOTHING
                RETURNING id
                """,
                (user_id, achievement_id)
            )
            result = await cur.fetchone()
            await conn.commit()

            if result:
                logger.info(f"User {user_id} unlocked achievement {achievement_id}")
                return True
            return False


# ==========================================
# Statistics helpers
# ==========================================

async def get_attempt_totals(user_id: str) -> dict:
    """
    Attempt counts by type, average score and perfect scores

    Returns:
        {
            'quiz_attempts': int,
            'voice_attempts': int,
            'flashcard_attempts': int,
            'total_attempts': int,
            'average_score': float,
            'perfect_scores': int
        }
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT
                    COUNT(*) FILTER (WHERE attempt_type = 'quiz') AS quiz_attempts,
                    COUNT(*) FILTER (WHERE attempt_type = 'voice') AS voice_attempts,
                    COUNT(*) FILTER (WHERE attempt_type = 'flashcard') AS flashcard_attempts,
                    COUNT(*) AS total_attempts,
                    COALESCE(AVG(score) FILTER (WHERE score IS NOT NULL), 0) AS average_score,
                    COUNT(*) FILTER (WHERE score = 100) AS perfect_scores
                FROM question_attempts
                WHERE user_id = %s
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            return {
                'quiz_attempts': int(row['quiz_attempts']),
                'voice_attempts': int(row['voice_attempts']),
                'flashcard_attempts': int(row['flashcard_attempts']),
                'total_attempts': int(row['total_attempts']),
                'average_score': float(row['average_score']),
                'perfect_scores': int(row['perfect_scores']),
            }


async def count_completed_sessions(user_id: str) -> int:
    """Count sessions the user has closed"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COUNT(*) AS count
                FROM practice_sessions
                WHERE user_id = %s AND ended_at IS NOT NULL
                """,
                (user_id,)
            )
            result = await cur.fetchone()
            return int(result['count']) if result else 0


async def get_topic_totals(user_id: str) -> dict:
    """
    Completed topics across all jobs, and whether any plan is fully done

    A plan is complete when its topic list is non-empty and every plan topic
    is in topics_completed. Completed names that are no longer in the plan
    do not count toward completion.

    Returns:
        {'topics_completed': int, 'all_topics_complete': bool}
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT
                    COALESCE(SUM(cardinality(topics_completed)), 0) AS topics_completed,
                    COALESCE(
                        BOOL_OR(cardinality(plan_topics) > 0 AND plan_topics <@ topics_completed),
                        FALSE
                    ) AS all_topics_complete
                FROM user_progress
                WHERE user_id = %s
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            return {
                'topics_completed': int(row['topics_completed']),
                'all_topics_complete': bool(row['all_topics_complete']),
            }


async def count_unique_companies(user_id: str) -> int:
    """Count distinct job postings the user has practiced for"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COUNT(DISTINCT job_description_hash) AS count
                FROM question_attempts
                WHERE user_id = %s AND job_description_hash IS NOT NULL
                """,
                (user_id,)
            )
            result = await cur.fetchone()
            return int(result['count']) if result else 0


async def get_latest_attempt_time(user_id: str) -> Optional[datetime]:
    """Timestamp of the user's most recent attempt"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT created_at
                FROM question_attempts
                WHERE user_id = %s
                ORDER BY created_at DESC
                LIMIT 1
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            return row['created_at'] if row else None


async def has_score_improvement(user_id: str, min_improvement: int) -> bool:
    """
    Check for a repeated question whose best score beats its first score

    Returns True if any question answered 2+ times has
    best_score - first_score >= min_improvement
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT EXISTS (
                    SELECT 1
                    FROM (
                        SELECT
                            (ARRAY_AGG(score ORDER BY created_at, id))[1] AS first_score,
                            MAX(score) AS best_score
                        FROM question_attempts
                        WHERE user_id = %s AND score IS NOT NULL AND question_text <> ''
                        GROUP BY question_text
                        HAVING COUNT(*) >= 2
                    ) AS repeated
                    WHERE best_score - first_score >= %s
                ) AS improved
                """,
                (user_id, min_improvement)
            )
            row = await cur.fetchone()
            return bool(row['improved']) if row else False
