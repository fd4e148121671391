"""
Practice ordering - put the questions a user is weakest at first

Priority per question, from the user's Attempt Log for one job posting:
- never attempted: 100
- average score < 50: 90, < 70: 70, < 85: 40, otherwise 10
- +30 if last attempted more than 7 days ago, +15 if more than 3 days ago
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from prep_gamification.utils.datetime_helpers import now_utc, to_utc

logger = logging.getLogger(__name__)

NEW_QUESTION_PRIORITY = 100

# (average score below, priority)
SCORE_PRIORITY_TIERS = [
    (50, 90),
    (70, 70),
    (85, 40),
]
MASTERED_PRIORITY = 10

# (days since last attempt above, bonus), longest gap first
RECENCY_BONUS_TIERS = [
    (7, 30),
    (3, 15),
]


def question_text(question: Union[str, Dict[str, Any]]) -> str:
    """Questions arrive either as plain text or as dicts with a 'question' key"""
    if isinstance(question, dict):
        return question.get("question", "")
    return question


def priority_for(avg_score: float, last_attempted: Optional[datetime], now: datetime) -> int:
    """Priority of an attempted question"""
    priority = MASTERED_PRIORITY
    for below, tier_priority in SCORE_PRIORITY_TIERS:
        if avg_score < below:
            priority = tier_priority
            break

    if last_attempted is not None:
        days_since = (now - to_utc(last_attempted)).total_seconds() / 86400
        for above, bonus in RECENCY_BONUS_TIERS:
            if days_since > above:
                priority += bonus
                break

    return priority


def status_for(avg_score: Optional[float]) -> str:
    if avg_score is None:
        return "new"
    if avg_score < 50:
        return "needs_work"
    if avg_score < 80:
        return "improving"
    return "mastered"


def rank_questions(
    questions: List[Union[str, Dict[str, Any]]],
    attempt_stats: Dict[str, Dict[str, Any]],
    now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """
    Order questions by descending priority (ties keep their input order)

    Args:
        questions: Question texts or dicts carrying a 'question' key
        attempt_stats: question text -> {avg_score, attempt_count, last_attempted}
        now: Reference time for recency (defaults to now)

    Returns:
        One dict per question: the original fields (or {'question': text})
        plus 'priority', 'attempt_data' and 'status'
    """
    now = now or now_utc()
    ranked = []

    for question in questions:
        stats = attempt_stats.get(question_text(question))
        entry = dict(question) if isinstance(question, dict) else {"question": question}

        if stats is None:
            entry.update(priority=NEW_QUESTION_PRIORITY, attempt_data=None, status="new")
        else:
            avg_score = float(stats.get("avg_score") or 0)
            entry.update(
                priority=priority_for(avg_score, stats.get("last_attempted"), now),
                attempt_data={
                    "avg_score": avg_score,
                    "attempt_count": int(stats.get("attempt_count") or 0),
                    "last_attempted": stats.get("last_attempted"),
                },
                status=status_for(avg_score),
            )
        ranked.append(entry)

    ranked.sort(key=lambda q: q["priority"], reverse=True)
    logger.debug(f"Ranked {len(ranked)} questions, {len(attempt_stats)} with history")
    return ranked
