"""XP ledger and totals"""
import logging
from typing import Optional
from prep_gamification.db.connection import db

logger = logging.getLogger(__name__)

CREDIT_XP_SQL = """
    INSERT INTO user_xp (user_id, total_xp)
    VALUES (%s, %s)
    ON CONFLICT (user_id) DO UPDATE
    SET total_xp = user_xp.total_xp + EXCLUDED.total_xp,
        updated_at = CURRENT_TIMESTAMP
    RETURNING total_xp
"""

LEDGER_SQL = """
    INSERT INTO xp_transactions (user_id, amount, source_type, source_id, reason)
    VALUES (%s, %s, %s, %s, %s)
"""


async def _credit(cur, user_id: str, amount: int, source_type: str,
                  source_id: Optional[str], reason: str) -> int:
    """Increment the total and append the ledger row on an open cursor"""
    await cur.execute(CREDIT_XP_SQL, (user_id, amount))
    row = await cur.fetchone()
    await cur.execute(LEDGER_SQL, (user_id, amount, source_type, source_id, reason))
    return row['total_xp']


async def get_user_xp_data(user_id: str) -> dict:
    """
    Get user XP totals (zeros if the user has never earned XP)

    Returns:
        {
            'user_id': str,
            'total_xp': int,
            'current_level': int
        }
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT user_id, total_xp, current_level
                FROM user_xp
                WHERE user_id = %s
                """,
                (user_id,)
            )
            row = await cur.fetchone()

            if not row:
                return {'user_id': user_id, 'total_xp': 0, 'current_level': 1}
            return dict(row)


async def increment_user_xp(
    user_id: str,
    amount: int,
    source_type: str,
    source_id: Optional[str],
    reason: str
) -> dict:
    """
    Atomically add XP to the user's total and append a ledger row

    The increment happens in SQL (total_xp = total_xp + amount) so
    concurrent requests for the same user never lose an update.

    Returns:
        {
            'total_xp': int,          # total after this increment
            'previous_total_xp': int  # total_xp - amount
        }
    """
    async with db.connection() as conn:
        async with conn.transaction():
            async with conn.cursor() as cur:
                total_xp = await _credit(cur, user_id, amount, source_type, source_id, reason)

    return {'total_xp': total_xp, 'previous_total_xp': total_xp - amount}


async def record_attempt_xp(
    user_id: str,
    attempt_type: str,
    score: Optional[int],
    xp_earned: int,
    reason: str,
    question_text: str = "",
    question_category: Optional[str] = None,
    job_description_hash: Optional[str] = None,
    session_id: Optional[int] = None
) -> dict:
    """
    Log an attempt and credit its XP in one transaction

    Either the Attempt Log row, the total increment and the ledger row are
    all stored, or none of them is.

    Returns:
        {
            'attempt_id': int,
            'total_xp': int,
            'previous_total_xp': int
        }
    """
    async with db.connection() as conn:
        async with conn.transaction():
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    INSERT INTO question_attempts (
                        user_id, session_id, job_description_hash, question_text,
                        question_category, attempt_type, score, xp_earned
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING id
                    """,
                    (
                        user_id,
                        session_id,
                        job_description_hash,
                        question_text,
                        question_category,
                        attempt_type,
                        score,
                        xp_earned
                    )
                )
                attempt_id = (await cur.fetchone())['id']

                if xp_earned > 0:
                    total_xp = await _credit(
                        cur, user_id, xp_earned, attempt_type, str(attempt_id), reason
                    )
                else:
                    await cur.execute(
                        "SELECT COALESCE(MAX(total_xp), 0) AS total_xp FROM user_xp WHERE user_id = %s",
                        (user_id,)
                    )
                    total_xp = (await cur.fetchone())['total_xp']

    return {
        'attempt_id': attempt_id,
        'total_xp': total_xp,
        'previous_total_xp': total_xp - max(xp_earned, 0),
    }


async def update_user_level(user_id: str, level: int) -> None:
    """
    Store the derived level

    GREATEST keeps the stored level monotonic when two requests race.
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE user_xp
                SET current_level = GREATEST(current_level, %s),
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s
                """,
                (level, user_id)
            )
            await conn.commit()


async def get_xp_transactions(user_id: str, limit: int = 50) -> list[dict]:
    """
    Get recent XP transactions for user

    Returns:
        List of transactions ordered by awarded_at DESC
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id, user_id, amount, source_type, source_id, reason, awarded_at
                FROM xp_transactions
                WHERE user_id = %s
                ORDER BY awarded_at DESC
                LIMIT %s
                """,
                (user_id, limit)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]
