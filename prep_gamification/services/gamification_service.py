"""
GamificationService - Practice Gamification Business Logic

Orchestrates a practice event end to end: validation, XP calculation and
crediting, session counters, streak update and achievement unlocks.
Read-side dashboards (stats, skill mastery, history) live here too.
"""

import logging
import math
from typing import Dict, List, Any, Optional, Tuple, Union
from datetime import date, timedelta

import psycopg

from prep_gamification.db import queries
from prep_gamification.exceptions import (
    ValidationError,
    RecordNotFoundError,
    wrap_external_exception,
)
from prep_gamification.gamification import (
    compute_xp,
    award_xp,
    award_attempt_xp,
    get_user_xp,
    record_practice,
    get_streak,
    check_and_unlock,
    get_user_achievements,
    is_level_up,
    level_for_xp,
    rank_questions,
)
from prep_gamification.models.achievement import AchievementDefinition
from prep_gamification.models.practice import (
    AttemptResult,
    EventType,
    SessionSummary,
    XpBreakdown,
)
from prep_gamification.models.stats import (
    GamificationStats,
    SkillStat,
    SkillStats,
    StreakSummary,
    TodayStats,
    WeeklyStats,
)
from prep_gamification.utils.datetime_helpers import practice_today, start_of_day, start_of_week
from prep_gamification.validators import AttemptInput, ProgressInput, validate_input

logger = logging.getLogger(__name__)

# Scores at or above this count as "correct"
CORRECT_SCORE_THRESHOLD = 70


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class GamificationService:
    """
    Service for interview-practice gamification.

    Responsibilities:
    - XP calculation and crediting per practice event
    - Practice sessions (start, per-attempt counters, close)
    - Streak tracking and achievement unlocking
    - Stats, skill mastery and practice history
    - Weakest-first question ordering
    """

    def __init__(self, db_connection):
        """
        Initialize GamificationService.

        Args:
            db_connection: Database connection instance
        """
        self.db = db_connection
        logger.debug("GamificationService initialized")

    async def record_attempt(
        self,
        user_id: str,
        attempt_type: Union[EventType, str],
        score: Optional[float] = None,
        category: Optional[str] = None,
        session_id: Optional[int] = None,
        *,
        question_text: str = "",
        job_description_hash: Optional[str] = None,
        today: Optional[date] = None
    ) -> AttemptResult:
        """
        Record one practice event and apply all of its rewards.

        Args:
            user_id: User identifier
            attempt_type: quiz, voice, flashcard_known or flashcard_practice
            score: 0-100 grade (required for quiz/voice, ignored for flashcards)
            category: Question category for skill stats
            session_id: Open practice session to count the attempt in
            question_text: Question asked (used for repeat-improvement tracking)
            job_description_hash: Job posting the practice is for
            today: Calendar day of the event (defaults to today in PRACTICE_TIMEZONE)

        Returns:
            AttemptResult with XP earned (including achievement rewards), the
            new total and level, and newly unlocked achievements

        Raises:
            ValidationError: Bad input; nothing was written
            RecordNotFoundError: session_id is unknown or another user's; nothing was written
            DatabaseError: XP could not be recorded
        """
        attempt = validate_input(
            AttemptInput,
            user_id=user_id,
            attempt_type=attempt_type,
            score=score,
            category=category,
            question_text=question_text,
            job_description_hash=job_description_hash,
            session_id=session_id,
        )
        user_id = attempt.user_id
        event = attempt.attempt_type
        if today is None:
            today = practice_today()

        try:
            if attempt.session_id is not None:
                session = await queries.get_session(attempt.session_id)
                if session is None or session["user_id"] != user_id:
                    raise RecordNotFoundError(
                        message=f"Practice session {attempt.session_id} not found",
                        record_type="Practice session",
                        record_id=str(attempt.session_id),
                        user_id=user_id
                    )

            # Multiplier comes from the streak in effect before this event
            streak = await queries.get_user_streak(user_id)
            attempts_today = await queries.count_attempts_since(user_id, start_of_day(today))

            xp = compute_xp(
                event,
                attempt.score,
                streak["current_streak"],
                is_first_qualifying_event_today=attempts_today == 0,
            )

            xp_result = await award_attempt_xp(
                user_id=user_id,
                amount=xp["xp"],
                attempt_type=event.attempt_type.value,
                score=attempt.score,
                reason=f"Practice: {event.value}",
                question_text=attempt.question_text,
                question_category=attempt.category,
                job_description_hash=attempt.job_description_hash,
                session_id=attempt.session_id,
            )
            attempt_id = xp_result["attempt_id"]

            if attempt.session_id is not None:
                counted = await queries.add_attempt_to_session(
                    attempt.session_id, user_id, attempt.score, xp["xp"], CORRECT_SCORE_THRESHOLD
                )
                if not counted:
                    logger.warning(
                        f"Attempt {attempt_id} for user {user_id} references "
                        f"session {attempt.session_id}, which is not open"
                    )

            await record_practice(user_id, today)

        except psycopg.Error as e:
            raise wrap_external_exception(
                e,
                operation="record_attempt",
                user_id=user_id,
                context={"attempt_type": event.value, "score": attempt.score}
            ) from e

        new_achievements, achievement_xp, total_after = await self._process_achievements(user_id)
        total_xp = total_after if total_after is not None else xp_result["new_total_xp"]
        level_info = level_for_xp(total_xp)

        logger.info(
            f"Attempt recorded: user={user_id}, type={event.value}, "
            f"xp={xp['xp'] + achievement_xp}, achievements={len(new_achievements)}"
        )

        return AttemptResult(
            attempt_id=attempt_id,
            xp_earned=xp["xp"] + achievement_xp,
            xp_breakdown=XpBreakdown(
                base=xp["base"],
                score_bonus=xp["score_bonus"],
                multiplier=xp["multiplier"],
                daily_bonus=xp["daily_bonus"],
                achievement_xp=achievement_xp,
            ),
            total_xp=total_xp,
            level=level_info["level"],
            level_title=level_info["title"],
            level_up=is_level_up(xp_result["old_total_xp"], total_xp),
            new_achievements=new_achievements,
        )

    async def start_session(
        self,
        user_id: str,
        job_description_hash: Optional[str] = None,
        mode: str = "quiz"
    ) -> int:
        """
        Open a practice session, closing any the user left open.

        Returns:
            New session ID
        """
        if not user_id or not user_id.strip():
            raise ValidationError(message="User id is required", field="user_id", value=user_id)

        try:
            for open_id in await queries.get_open_session_ids(user_id):
                await queries.close_session(open_id, user_id, CORRECT_SCORE_THRESHOLD)
                logger.info(f"Auto-closed stale session {open_id} for user {user_id}")

            session = await queries.create_session(user_id, job_description_hash, mode)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="start_session", user_id=user_id) from e

        return session["id"]

    async def end_session(self, session_id: int, user_id: Optional[str] = None) -> SessionSummary:
        """
        Close a session and summarize it.

        Only the first close recomputes counters, updates the streak and
        checks achievements; later calls return the stored summary with
        already_ended=True and change nothing.

        Args:
            session_id: Session to close
            user_id: Owner check (optional)

        Raises:
            RecordNotFoundError: Unknown session, or owned by another user
        """
        try:
            session = await queries.get_session(session_id)
            if session is None or (user_id is not None and session["user_id"] != user_id):
                raise RecordNotFoundError(
                    message=f"Practice session {session_id} not found",
                    record_type="Practice session",
                    record_id=str(session_id),
                    user_id=user_id
                )

            closed = await queries.close_session(session_id, session["user_id"], CORRECT_SCORE_THRESHOLD)
            if closed is None:
                stored = await queries.get_session(session_id)
                return self._session_summary(stored, already_ended=True)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="end_session", user_id=user_id) from e

        owner = closed["user_id"]

        streak_update = None
        try:
            streak_update = await record_practice(owner)
        except Exception as e:
            logger.error(f"Streak update failed when closing session {session_id}: {e}", exc_info=True)

        achievements, achievement_xp, _ = await self._process_achievements(owner)

        logger.info(
            f"Session {session_id} ended: user={owner}, "
            f"questions={closed['questions_attempted']}, achievements={len(achievements)}"
        )

        return self._session_summary(
            closed,
            achievements=achievements,
            achievement_xp=achievement_xp,
            streak_update=streak_update,
        )

    async def get_stats(self, user_id: str) -> GamificationStats:
        """Full gamification snapshot: XP, level, streak, achievements, today's activity"""
        xp = await get_user_xp(user_id)
        streak = await get_streak(user_id)
        achievements = await get_user_achievements(user_id)
        today = await queries.get_activity_since(user_id, start_of_day(practice_today()))

        return GamificationStats(
            total_xp=xp["total_xp"],
            level=xp["level"],
            level_title=xp["title"],
            xp_for_current_level=xp["xp_for_current_level"],
            xp_for_next_level=xp["xp_for_next_level"],
            xp_into_level=xp["xp_into_current_level"],
            xp_needed_for_next=xp["xp_needed_for_next_level"],
            progress_percent=xp["progress_percent"],
            streak=StreakSummary(
                current=streak["current_streak"],
                longest=streak["longest_streak"],
                multiplier=streak["multiplier"],
                last_practice_date=streak["last_practice_date"],
            ),
            achievements=achievements,
            today_stats=TodayStats(**today),
        )

    async def get_skill_stats(self, user_id: str) -> SkillStats:
        """
        Per-category mastery and week-over-week volume.

        mastery = min(correct percent, rounded average score)
        """
        rows = await queries.get_category_stats(user_id, CORRECT_SCORE_THRESHOLD)

        skills = []
        for row in rows:
            total = int(row["total_attempts"])
            correct = int(row["correct_count"])
            avg_score = float(row["avg_score"] or 0)
            correct_percent = _round_half_up(correct / total * 100) if total else 0

            skills.append(SkillStat(
                category=row["question_category"],
                mastery=min(correct_percent, _round_half_up(avg_score)),
                avg_score=avg_score,
                total_attempts=total,
                unique_questions=int(row["unique_questions"]),
                correct_count=correct,
                last_practiced=row["last_practiced"],
            ))

        today = practice_today()
        weekly = await queries.get_weekly_counts(
            user_id,
            this_week_start=start_of_week(today),
            last_week_start=start_of_week(today - timedelta(days=7)),
        )

        return SkillStats(
            skills=skills,
            weekly_stats=WeeklyStats(
                questions_this_week=weekly["this_week"],
                questions_last_week=weekly["last_week"],
                change_percent=self._change_percent(weekly["this_week"], weekly["last_week"]),
            ),
        )

    async def check_achievements(self, user_id: str) -> Dict[str, Any]:
        """
        Evaluate achievements outside of an attempt and credit their XP.

        Returns:
            {'new_achievements': list[AchievementDefinition], 'xp_awarded': int}
        """
        achievements, achievement_xp, _ = await self._process_achievements(user_id)
        return {"new_achievements": achievements, "xp_awarded": achievement_xp}

    async def save_progress(
        self,
        user_id: str,
        job_description_hash: str,
        topics_studied: Optional[List[str]] = None,
        topics_completed: Optional[List[str]] = None,
        plan_topics: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """
        Merge study-topic progress for a job, then check topic achievements.

        Returns:
            {'progress': dict, 'new_achievements': list, 'xp_awarded': int}
        """
        progress = validate_input(
            ProgressInput,
            user_id=user_id,
            job_description_hash=job_description_hash,
            topics_studied=topics_studied or [],
            topics_completed=topics_completed or [],
            plan_topics=plan_topics,
        )

        try:
            row = await queries.save_progress(
                progress.user_id,
                progress.job_description_hash,
                topics_studied=progress.topics_studied,
                topics_completed=progress.topics_completed,
                plan_topics=progress.plan_topics,
            )
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="save_progress", user_id=user_id) from e

        achievements, achievement_xp, _ = await self._process_achievements(progress.user_id)
        return {"progress": row, "new_achievements": achievements, "xp_awarded": achievement_xp}

    async def get_progress(self, user_id: str, job_description_hash: str) -> Dict[str, Any]:
        """Topic progress for one job; empty lists when nothing is stored"""
        row = await queries.get_progress(user_id, job_description_hash)
        if row is None:
            return {
                "job_description_hash": job_description_hash,
                "topics_studied": [],
                "topics_completed": [],
                "plan_topics": [],
                "updated_at": None,
            }
        return row

    async def get_overall_progress(self, user_id: str) -> Dict[str, Any]:
        """
        Topic progress aggregated across every job.

        Returns:
            {
                'total_topics_studied': int,
                'total_topics_completed': int,
                'job_progresses': list[dict]
            }
        """
        rows = await queries.get_all_progress(user_id)
        return {
            "total_topics_studied": sum(len(row["topics_studied"] or []) for row in rows),
            "total_topics_completed": sum(len(row["topics_completed"] or []) for row in rows),
            "job_progresses": rows,
        }

    async def get_practice_history(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
        job_description_hash: Optional[str] = None
    ) -> Dict[str, Any]:
        """Closed sessions, newest first: {'sessions': list, 'total': int}"""
        if limit < 1 or limit > 100:
            raise ValidationError(message="Limit must be between 1 and 100", field="limit", value=limit)
        if offset < 0:
            raise ValidationError(message="Offset cannot be negative", field="offset", value=offset)

        return await queries.get_practice_history(
            user_id, limit=limit, offset=offset, job_description_hash=job_description_hash
        )

    async def get_smart_order(
        self,
        user_id: str,
        job_description_hash: Optional[str],
        questions: List[Union[str, Dict[str, Any]]]
    ) -> List[Dict[str, Any]]:
        """
        Order a job's questions weakest first, using the user's attempt history.

        Args:
            user_id: User identifier
            job_description_hash: Job posting the questions belong to; without
                one every question is treated as new
            questions: Question texts or dicts with a 'question' key

        Returns:
            Questions with 'priority', 'attempt_data' and 'status' added,
            highest priority first
        """
        if not questions or not isinstance(questions, list):
            raise ValidationError(
                message="questions must be a non-empty list", field="questions", value=questions
            )

        attempt_stats = {}
        if job_description_hash:
            try:
                attempt_stats = await queries.get_question_attempt_stats(user_id, job_description_hash)
            except psycopg.Error as e:
                raise wrap_external_exception(e, operation="get_smart_order", user_id=user_id) from e

        return rank_questions(questions, attempt_stats)

    # ========================================
    # Internal helpers
    # ========================================

    async def _process_achievements(
        self,
        user_id: str
    ) -> Tuple[List[AchievementDefinition], int, Optional[int]]:
        """
        Unlock achievements and credit their XP.

        Failures are logged and skipped; the caller's primary result stands.

        Returns:
            (newly unlocked achievements, XP credited for them, latest total XP
            or None if nothing was credited)
        """
        achievements = await check_and_unlock(user_id)

        achievement_xp = 0
        latest_total = None
        for achievement in achievements:
            try:
                result = await award_xp(
                    user_id=user_id,
                    amount=achievement.xp_reward,
                    source_type="achievement",
                    source_id=achievement.id,
                    reason=f"Achievement: {achievement.name}"
                )
            except Exception as e:
                logger.error(
                    f"Failed to credit XP for achievement {achievement.id} (user {user_id}): {e}",
                    exc_info=True
                )
                continue

            achievement_xp += result["xp_awarded"]
            latest_total = result["new_total_xp"]

        return achievements, achievement_xp, latest_total

    @staticmethod
    def _change_percent(this_week: int, last_week: int) -> int:
        if last_week > 0:
            return _round_half_up((this_week - last_week) / last_week * 100)
        return 100 if this_week > 0 else 0

    @staticmethod
    def _session_summary(
        session: Dict[str, Any],
        achievements: Optional[List[AchievementDefinition]] = None,
        achievement_xp: int = 0,
        streak_update: Optional[Dict[str, Any]] = None,
        already_ended: bool = False
    ) -> SessionSummary:
        return SessionSummary(
            session_id=session["id"],
            questions_attempted=session["questions_attempted"],
            questions_correct=session["questions_correct"],
            average_score=float(session["average_score"]),
            total_xp_earned=session["total_xp_earned"],
            achievements=achievements or [],
            achievement_xp=achievement_xp,
            streak_update=streak_update,
            already_ended=already_ended,
        )
