"""Streak state persistence"""
import logging
from typing import Callable
from prep_gamification.db.connection import db

logger = logging.getLogger(__name__)

EMPTY_STREAK = {
    'current_streak': 0,
    'longest_streak': 0,
    'last_practice_date': None,
}


async def get_user_streak(user_id: str) -> dict:
    """
    Get streak state for user (zeros if the user never practiced)

    Returns:
        {
            'user_id': str,
            'current_streak': int,
            'longest_streak': int,
            'last_practice_date': date | None
        }
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT user_id, current_streak, longest_streak, last_practice_date
                FROM user_streaks
                WHERE user_id = %s
                """,
                (user_id,)
            )
            row = await cur.fetchone()

            if not row:
                return {'user_id': user_id, **EMPTY_STREAK}
            return dict(row)


async def apply_streak_update(
    user_id: str,
    update: Callable[[dict], dict]
) -> tuple[dict, dict]:
    """
    Read-lock-update the user's streak row in one transaction

    The row is created lazily, then locked with SELECT ... FOR UPDATE so
    concurrent same-day calls serialize and see each other's writes.

    Args:
        user_id: User identifier
        update: Pure function mapping the stored state to the new state
            (keys current_streak, longest_streak, last_practice_date)

    Returns:
        (previous_state, new_state)
    """
    async with db.connection() as conn:
        async with conn.transaction():
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    INSERT INTO user_streaks (user_id)
                    VALUES (%s)
                    ON CONFLICT (user_id) DO NOTHING
                    """,
                    (user_id,)
                )
                await cur.execute(
                    """
                    SELECT user_id, current_streak, longest_streak, last_practice_date
                    FROM user_streaks
                    WHERE user_id = %s
                    FOR UPDATE
                    """,
                    (user_id,)
                )
                previous = dict(await cur.fetchone())
                new_state = update(previous)

                await cur.execute(
                    """
                    UPDATE user_streaks
                    SET current_streak = %s,
                        longest_streak = %s,
                        last_practice_date = %s,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE user_id = %s
                    """,
                    (
                        new_state['current_streak'],
                        new_state['longest_streak'],
                        new_state['last_practice_date'],
                        user_id
                    )
                )

    return previous, {**previous, **new_state}

