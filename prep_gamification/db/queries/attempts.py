"""Attempt Log reads (rows are written with their XP by xp.record_attempt_xp)"""
import logging
from datetime import datetime
from typing import Optional
from prep_gamification.db.connection import db

logger = logging.getLogger(__name__)


async def count_attempts_since(user_id: str, since: datetime) -> int:
    """Count the user's attempts logged at or after `since`"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COUNT(*) AS count
                FROM question_attempts
                WHERE user_id = %s AND created_at >= %s
                """,
                (user_id, since)
            )
            result = await cur.fetchone()
            return result['count'] if result else 0


async def get_activity_since(user_id: str, since: datetime) -> dict:
    """
    Questions answered, XP earned and sessions completed since `since`

    Returns:
        {
            'questions_answered': int,
            'xp_earned': int,
            'sessions_completed': int
        }
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT
                    COUNT(*) AS questions_answered,
                    COALESCE(SUM(xp_earned), 0) AS xp_earned
                FROM question_attempts
                WHERE user_id = %s AND created_at >= %s
                """,
                (user_id, since)
            )
            attempts = await cur.fetchone()

            await cur.execute(
                """
                SELECT COUNT(*) AS sessions_completed
                FROM practice_sessions
                WHERE user_id = %s AND started_at >= %s AND ended_at IS NOT NULL
                """,
                (user_id, since)
            )
            sessions = await cur.fetchone()

            return {
                'questions_answered': int(attempts['questions_answered']),
                'xp_earned': int(attempts['xp_earned']),
                'sessions_completed': int(sessions['sessions_completed']),
            }


async def get_category_stats(user_id: str, correct_threshold: int) -> list[dict]:
    """
    Aggregate scored attempts per question category

    Returns:
        List of {question_category, total_attempts, unique_questions,
        avg_score, correct_count, last_practiced} ordered by attempts DESC
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT
                    question_category,
                    COUNT(*) AS total_attempts,
                    COUNT(DISTINCT question_text) AS unique_questions,
                    ROUND(AVG(score)::numeric, 1) AS avg_score,
                    COUNT(*) FILTER (WHERE score >= %s) AS correct_count,
                    MAX(created_at) AS last_practiced
                FROM question_attempts
                WHERE user_id = %s
                  AND question_category IS NOT NULL
                  AND question_category <> ''
                GROUP BY question_category
                ORDER BY total_attempts DESC
                """,
                (correct_threshold, user_id)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


async def get_weekly_counts(
    user_id: str,
    this_week_start: datetime,
    last_week_start: datetime
) -> dict:
    """
    Count attempts in the current and previous week

    Returns:
        {'this_week': int, 'last_week': int}
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT
                    COUNT(*) FILTER (WHERE created_at >= %(this_week)s) AS this_week,
                    COUNT(*) FILTER (
                        WHERE created_at >= %(last_week)s AND created_at < %(this_week)s
                    ) AS last_week
                FROM question_attempts
                WHERE user_id = %(user_id)s AND created_at >= %(last_week)s
                """,
                {
                    'user_id': user_id,
                    'this_week': this_week_start,
                    'last_week': last_week_start,
                }
            )
            row = await cur.fetchone()
            return {
                'this_week': int(row['this_week']) if row else 0,
                'last_week': int(row['last_week']) if row else 0,
            }


async def get_question_attempt_stats(user_id: str, job_description_hash: Optional[str]) -> dict:
    """
    Per-question history for one job posting

    Returns:
        {question_text: {'avg_score': float | None, 'attempt_count': int,
        'last_attempted': datetime}}
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT
                    question_text,
                    AVG(score) AS avg_score,
                    COUNT(*) AS attempt_count,
                    MAX(created_at) AS last_attempted
                FROM question_attempts
                WHERE user_id = %s AND job_description_hash = %s
                GROUP BY question_text
                """,
                (user_id, job_description_hash)
            )
            rows = await cur.fetchall()
            return {
                row['question_text']: {
                    'avg_score': float(row['avg_score']) if row['avg_score'] is not None else None,
                    'attempt_count': int(row['attempt_count']),
                    'last_attempted': row['last_attempted'],
                }
                for row in rows
            }
