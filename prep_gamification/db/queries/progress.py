"""Study-topic progress per job posting"""
import logging
from typing import Optional
from prep_gamification.db.connection import db

logger = logging.getLogger(__name__)

PROGRESS_COLUMNS = """
    user_id, job_description_hash, topics_studied, topics_completed,
    plan_topics, updated_at
"""


async def save_progress(
    user_id: str,
    job_description_hash: str,
    topics_studied: Optional[list[str]] = None,
    topics_completed: Optional[list[str]] = None,
    plan_topics: Optional[list[str]] = None
) -> dict:
    """
    Merge topic progress for one job (upsert, never removes topics)

    Studied and completed topics are unioned with what is stored.
    plan_topics, when given, replaces the stored plan topic list: it is the
    study plan's current topic set and drives "all topics complete".

    Returns:
        Updated progress row
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO user_progress (
                    user_id, job_description_hash, topics_studied, topics_completed, plan_topics
                )
                VALUES (%(user_id)s, %(job)s,
                        COALESCE(%(studied)s::text[], '{{}}'),
                        COALESCE(%(completed)s::text[], '{{}}'),
                        COALESCE(%(plan)s::text[], '{{}}'))
                ON CONFLICT (user_id, job_description_hash) DO UPDATE SET
                    topics_studied = ARRAY(
                        SELECT DISTINCT unnest(user_progress.topics_studied || EXCLUDED.topics_studied)
                    ),
                    topics_completed = ARRAY(
                        SELECT DISTINCT unnest(user_progress.topics_completed || EXCLUDED.topics_completed)
                    ),
                    plan_topics = CASE
                        WHEN %(plan)s::text[] IS NOT NULL THEN EXCLUDED.plan_topics
                        ELSE user_progress.plan_topics
                    END,
                    updated_at = CURRENT_TIMESTAMP
                RETURNING {PROGRESS_COLUMNS}
                """,
                {
                    'user_id': user_id,
                    'job': job_description_hash,
                    'studied': topics_studied,
                    'completed': topics_completed,
                    'plan': plan_topics,
                }
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row)


async def get_progress(user_id: str, job_description_hash: str) -> Optional[dict]:
    """Get topic progress for one job"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {PROGRESS_COLUMNS}
                FROM user_progress
                WHERE user_id = %s AND job_description_hash = %s
                """,
                (user_id, job_description_hash)
            )
            row = await cur.fetchone()
            return dict(row) if row else None


async def get_all_progress(user_id: str) -> list[dict]:
    """Get topic progress for every job the user studied"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {PROGRESS_COLUMNS}
                FROM user_progress
                WHERE user_id = %s
                ORDER BY updated_at DESC
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]
