"""Practice session persistence"""
import logging
from typing import Optional
from prep_gamification.db.connection import db

logger = logging.getLogger(__name__)

SESSION_FIELDS = (
    "id", "user_id", "job_description_hash", "mode", "started_at", "ended_at",
    "questions_attempted", "questions_correct", "average_score", "total_xp_earned",
)
SESSION_COLUMNS = ", ".join(SESSION_FIELDS)
ALIASED_SESSION_COLUMNS = ", ".join(f"ps.{field}" for field in SESSION_FIELDS)


async def create_session(
    user_id: str,
    job_description_hash: Optional[str] = None,
    mode: str = "quiz"
) -> dict:
    """
    Open a new practice session

    Returns:
        Session row
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO practice_sessions (user_id, job_description_hash, mode)
                VALUES (%s, %s, %s)
                RETURNING {SESSION_COLUMNS}
                """,
                (user_id, job_description_hash, mode)
            )
            row = await cur.fetchone()
            await conn.commit()
            logger.info(f"Started practice session {row['id']} for user {user_id}")
            return dict(row)


async def get_session(session_id: int) -> Optional[dict]:
    """Get session by ID"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {SESSION_COLUMNS}
                FROM practice_sessions
                WHERE id = %s
                """,
                (session_id,)
            )
            row = await cur.fetchone()
            return dict(row) if row else None


async def get_open_session_ids(user_id: str) -> list[int]:
    """IDs of the user's sessions that were never closed"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id
                FROM practice_sessions
                WHERE user_id = %s AND ended_at IS NULL
                ORDER BY started_at
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [row['id'] for row in rows]


async def add_attempt_to_session(
    session_id: int,
    user_id: str,
    score: Optional[int],
    xp_earned: int,
    correct_threshold: int
) -> bool:
    """
    Bump an open session's counters for one of its owner's attempts

    Counters are incremented in SQL; the average is recomputed from the
    owner's Attempt Log rows. Closed sessions and sessions owned by
    another user are left untouched.

    Returns:
        True if the session was open and updated
    """
    is_correct = 1 if score is not None and score >= correct_threshold else 0

    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE practice_sessions
                SET questions_attempted = questions_attempted + 1,
                    questions_correct = questions_correct + %s,
                    total_xp_earned = total_xp_earned + %s,
                    average_score = (
                        SELECT COALESCE(AVG(score), 0)
                        FROM question_attempts
                        WHERE session_id = %s AND user_id = %s AND score IS NOT NULL
                    )
                WHERE id = %s AND user_id = %s AND ended_at IS NULL
                RETURNING id
                """,
                (is_correct, xp_earned, session_id, user_id, session_id, user_id)
            )
            result = await cur.fetchone()
            await conn.commit()
            return result is not None


async def close_session(session_id: int, user_id: str, correct_threshold: int) -> Optional[dict]:
    """
    Close a session, recomputing its counters from the Attempt Log

    The update only matches while ended_at IS NULL, so exactly one caller
    closes a session; everyone else gets None and should read the stored row.
    Only the owner's attempts are counted.

    Returns:
        The closed session row, or None if it was already closed, missing or not the user's
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                UPDATE practice_sessions AS ps
                SET ended_at = CURRENT_TIMESTAMP,
                    questions_attempted = s.questions_attempted,
                    questions_correct = s.questions_correct,
                    average_score = s.average_score,
                    total_xp_earned = s.total_xp_earned
                FROM (
                    SELECT
                        COUNT(*) AS questions_attempted,
                        COUNT(*) FILTER (WHERE score >= %(threshold)s) AS questions_correct,
                        COALESCE(AVG(score) FILTER (WHERE score IS NOT NULL), 0) AS average_score,
                        COALESCE(SUM(xp_earned), 0) AS total_xp_earned
                    FROM question_attempts
                    WHERE session_id = %(session_id)s AND user_id = %(user_id)s
                ) AS s
                WHERE ps.id = %(session_id)s
                  AND ps.user_id = %(user_id)s
                  AND ps.ended_at IS NULL
                RETURNING {ALIASED_SESSION_COLUMNS}
                """,
                {'session_id': session_id, 'user_id': user_id, 'threshold': correct_threshold}
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row) if row else None


async def get_practice_history(
    user_id: str,
    limit: int = 20,
    offset: int = 0,
    job_description_hash: Optional[str] = None
) -> dict:
    """
    Closed sessions, newest first

    Returns:
        {'sessions': list[dict], 'total': int}
    """
    where = "user_id = %s AND ended_at IS NOT NULL"
    params: list = [user_id]
    if job_description_hash:
        where += " AND job_description_hash = %s"
        params.append(job_description_hash)

    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {SESSION_COLUMNS}
                FROM practice_sessions
                WHERE {where}
                ORDER BY started_at DESC
                LIMIT %s OFFSET %s
                """,
                (*params, limit, offset)
            )
            rows = await cur.fetchall()

            await cur.execute(
                f"SELECT COUNT(*) AS count FROM practice_sessions WHERE {where}",
                tuple(params)
            )
            total = await cur.fetchone()

            return {
                'sessions': [dict(row) for row in rows],
                'total': int(total['count']) if total else 0,
            }
