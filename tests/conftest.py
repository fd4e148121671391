"""Global test fixtures and utilities for gamification engine tests"""
import asyncio
import pytest
from contextlib import ExitStack
from unittest.mock import AsyncMock, MagicMock, patch
from datetime import datetime, timezone

from prep_gamification.db import queries
from prep_gamification.db.queries.streaks import EMPTY_STREAK
from prep_gamification.utils.datetime_helpers import now_utc


# ============================================================================
# Database Fixtures
# ============================================================================

def make_mock_connection(cursor=None):
    """
    Connection mock usable as `async with conn.cursor() as cur` and
    `async with conn.transaction()`
    """
    cursor = cursor or AsyncMock()
    conn = MagicMock()
    conn.cursor.return_value.__aenter__.return_value = cursor
    conn.commit = AsyncMock()
    conn.rollback = AsyncMock()
    return conn, cursor


@pytest.fixture
def mock_db_cursor():
    """Mock database cursor with standard query results"""
    cursor = AsyncMock()
    cursor.fetchone = AsyncMock(return_value=None)
    cursor.fetchall = AsyncMock(return_value=[])
    cursor.execute = AsyncMock()
    return cursor


@pytest.fixture
def mock_db_connection(mock_db_cursor):
    conn, _ = make_mock_connection(mock_db_cursor)
    return conn


# ============================================================================
# User Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-123"


# ============================================================================
# In-memory store
# ============================================================================

class InMemoryStore:
    """
    Stand-in for the queries facade backed by dicts

    Each operation yields to the event loop first so concurrent tasks
    interleave, then mutates without awaiting, mirroring the atomicity of
    the SQL statements it replaces.
    """

    def __init__(self):
        self.xp = {}
        self.levels = {}
        self.transactions = []
        self.streaks = {}
        self.attempts = []
        self.sessions = {}
        self.progress = {}
        self.unlocks = {}
        self._next_id = 1

    def _id(self):
        value = self._next_id
        self._next_id += 1
        return value

    # XP
    async def get_user_xp_data(self, user_id):
        await asyncio.sleep(0)
        return {
            "user_id": user_id,
            "total_xp": self.xp.get(user_id, 0),
            "current_level": self.levels.get(user_id, 1),
        }

    async def increment_user_xp(self, user_id, amount, source_type, source_id=None, reason=None):
        await asyncio.sleep(0)
        previous = self.xp.get(user_id, 0)
        self.xp[user_id] = previous + amount
        self.transactions.append({
            "user_id": user_id,
            "amount": amount,
            "source_type": source_type,
            "source_id": source_id,
            "reason": reason,
            "awarded_at": now_utc(),
        })
        return {"total_xp": self.xp[user_id], "previous_total_xp": previous}

    async def update_user_level(self, user_id, level):
        await asyncio.sleep(0)
        self.levels[user_id] = max(self.levels.get(user_id, 1), level)

    async def get_xp_transactions(self, user_id, limit=50):
        await asyncio.sleep(0)
        rows = [t for t in self.transactions if t["user_id"] == user_id]
        return list(reversed(rows))[:limit]

    # Streaks
    async def get_user_streak(self, user_id):
        await asyncio.sleep(0)
        return dict(self.streaks.get(user_id, EMPTY_STREAK))

    async def apply_streak_update(self, user_id, update):
        await asyncio.sleep(0)
        previous = dict(self.streaks.get(user_id, EMPTY_STREAK))
        current = {**previous, **update(previous)}
        self.streaks[user_id] = current
        return previous, current

    # Attempts
    def insert_attempt(self, user_id, attempt_type, score, xp_earned, question_text="",
                       question_category=None, job_description_hash=None, session_id=None):
        """Seed an Attempt Log row without crediting XP"""
        attempt_id = self._id()
        self.attempts.append({
            "id": attempt_id,
            "user_id": user_id,
            "attempt_type": attempt_type,
            "score": score,
            "xp_earned": xp_earned,
            "question_text": question_text,
            "question_category": question_category,
            "job_description_hash": job_description_hash,
            "session_id": session_id,
            "created_at": now_utc(),
        })
        return attempt_id

    async def record_attempt_xp(self, user_id, attempt_type, score, xp_earned, reason,
                                question_text="", question_category=None,
                                job_description_hash=None, session_id=None):
        await asyncio.sleep(0)
        attempt_id = self.insert_attempt(
            user_id, attempt_type, score, xp_earned, question_text,
            question_category, job_description_hash, session_id
        )
        previous = self.xp.get(user_id, 0)
        if xp_earned > 0:
            self.xp[user_id] = previous + xp_earned
            self.transactions.append({
                "user_id": user_id,
                "amount": xp_earned,
                "source_type": attempt_type,
                "source_id": str(attempt_id),
                "reason": reason,
                "awarded_at": now_utc(),
            })
        return {
            "attempt_id": attempt_id,
            "total_xp": self.xp.get(user_id, 0),
            "previous_total_xp": previous,
        }

    def _user_attempts(self, user_id):
        return [a for a in self.attempts if a["user_id"] == user_id]

    async def get_question_attempt_stats(self, user_id, job_description_hash):
        await asyncio.sleep(0)
        grouped = {}
        for a in self._user_attempts(user_id):
            if a["job_description_hash"] == job_description_hash:
                grouped.setdefault(a["question_text"], []).append(a)
        stats = {}
        for text, rows in grouped.items():
            scores = [a["score"] for a in rows if a["score"] is not None]
            stats[text] = {
                "avg_score": sum(scores) / len(scores) if scores else None,
                "attempt_count": len(rows),
                "last_attempted": max(a["created_at"] for a in rows),
            }
        return stats

    async def count_attempts_since(self, user_id, since):
        await asyncio.sleep(0)
        return len([a for a in self._user_attempts(user_id) if a["created_at"] >= since])

    async def get_activity_since(self, user_id, since):
        await asyncio.sleep(0)
        recent = [a for a in self._user_attempts(user_id) if a["created_at"] >= since]
        sessions = [
            s for s in self.sessions.values()
            if s["user_id"] == user_id and s["ended_at"] is not None and s["started_at"] >= since
        ]
        return {
            "questions_answered": len(recent),
            "xp_earned": sum(a["xp_earned"] for a in recent),
            "sessions_completed": len(sessions),
        }

    # Sessions
    async def create_session(self, user_id, job_description_hash=None, mode="quiz"):
        await asyncio.sleep(0)
        session = {
            "id": self._id(),
            "user_id": user_id,
            "job_description_hash": job_description_hash,
            "mode": mode,
            "started_at": now_utc(),
            "ended_at": None,
            "questions_attempted": 0,
            "questions_correct": 0,
            "average_score": 0.0,
            "total_xp_earned": 0,
        }
        self.sessions[session["id"]] = session
        return dict(session)

    async def get_session(self, session_id):
        await asyncio.sleep(0)
        session = self.sessions.get(session_id)
        return dict(session) if session else None

    async def get_open_session_ids(self, user_id):
        await asyncio.sleep(0)
        return [
            s["id"] for s in self.sessions.values()
            if s["user_id"] == user_id and s["ended_at"] is None
        ]

    async def add_attempt_to_session(self, session_id, user_id, score, xp_earned, correct_threshold):
        await asyncio.sleep(0)
        session = self.sessions.get(session_id)
        if session is None or session["user_id"] != user_id or session["ended_at"] is not None:
            return False
        session["questions_attempted"] += 1
        session["questions_correct"] += 1 if score is not None and score >= correct_threshold else 0
        session["total_xp_earned"] += xp_earned
        return True

    async def close_session(self, session_id, user_id, correct_threshold):
        await asyncio.sleep(0)
        session = self.sessions.get(session_id)
        if session is None or session["user_id"] != user_id or session["ended_at"] is not None:
            return None
        rows = [
            a for a in self.attempts
            if a["session_id"] == session_id and a["user_id"] == user_id
        ]
        scores = [a["score"] for a in rows if a["score"] is not None]
        session.update({
            "ended_at": now_utc(),
            "questions_attempted": len(rows),
            "questions_correct": len([s for s in scores if s >= correct_threshold]),
            "average_score": sum(scores) / len(scores) if scores else 0.0,
            "total_xp_earned": sum(a["xp_earned"] for a in rows),
        })
        return dict(session)

    # Achievements
    async def get_user_achievement_unlocks(self, user_id):
        await asyncio.sleep(0)
        return [
            {"achievement_id": achievement_id, "unlocked_at": unlocked_at}
            for (uid, achievement_id), unlocked_at in self.unlocks.items()
            if uid == user_id
        ]

    async def unlock_achievement(self, user_id, achievement_id):
        await asyncio.sleep(0)
        key = (user_id, achievement_id)
        if key in self.unlocks:
            return False
        self.unlocks[key] = now_utc()
        return True

    async def get_attempt_totals(self, user_id):
        await asyncio.sleep(0)
        rows = self._user_attempts(user_id)
        scores = [a["score"] for a in rows if a["score"] is not None]
        return {
            "quiz_attempts": len([a for a in rows if a["attempt_type"] == "quiz"]),
            "voice_attempts": len([a for a in rows if a["attempt_type"] == "voice"]),
            "flashcard_attempts": len([a for a in rows if a["attempt_type"] == "flashcard"]),
            "total_attempts": len(rows),
            "average_score": sum(scores) / len(scores) if scores else 0.0,
            "perfect_scores": len([s for s in scores if s == 100]),
        }

    async def count_completed_sessions(self, user_id):
        await asyncio.sleep(0)
        return len([
            s for s in self.sessions.values()
            if s["user_id"] == user_id and s["ended_at"] is not None
        ])

    async def get_topic_totals(self, user_id):
        await asyncio.sleep(0)
        return {"topics_completed": 0, "all_topics_complete": False}

    async def count_unique_companies(self, user_id):
        await asyncio.sleep(0)
        return len({
            a["job_description_hash"] for a in self._user_attempts(user_id)
            if a["job_description_hash"]
        })

    async def get_latest_attempt_time(self, user_id):
        # Fixed midday timestamp keeps hour-of-day achievements out of the way
        await asyncio.sleep(0)
        if not self._user_attempts(user_id):
            return None
        return datetime(2026, 1, 14, 12, 0, tzinfo=timezone.utc)

    async def has_score_improvement(self, user_id, min_improvement):
        await asyncio.sleep(0)
        return False

    def install(self, stack: ExitStack):
        """Patch every facade function this store implements"""
        for name in queries.__all__:
            if hasattr(self, name):
                stack.enter_context(patch.object(queries, name, getattr(self, name)))


@pytest.fixture
def memory_store():
    """In-memory store patched over the queries facade for the test's duration"""
    store = InMemoryStore()
    with ExitStack() as stack:
        store.install(stack)
        yield store
