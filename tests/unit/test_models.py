"""Unit tests for pydantic models"""
import pytest
from pydantic import ValidationError

from prep_gamification.models.achievement import AchievementCategory, AchievementDefinition
from prep_gamification.models.practice import AttemptType, EventType, SessionSummary, XpBreakdown


@pytest.mark.parametrize("event,attempt_type,scored", [
    (EventType.QUIZ, AttemptType.QUIZ, True),
    (EventType.VOICE, AttemptType.VOICE, True),
    (EventType.FLASHCARD_KNOWN, AttemptType.FLASHCARD, False),
    (EventType.FLASHCARD_PRACTICE, AttemptType.FLASHCARD, False),
])
def test_event_type_maps_to_attempt_log_type(event, attempt_type, scored):
    assert event.attempt_type == attempt_type
    assert event.is_scored is scored


def test_achievement_definition_is_frozen():
    achievement = AchievementDefinition(
        id="first_quiz",
        name="First Steps",
        description="Complete your first quiz question",
        icon="🎯",
        xp_reward=25,
        category=AchievementCategory.GETTING_STARTED,
    )

    with pytest.raises(ValidationError):
        achievement.xp_reward = 1000


def test_achievement_reward_cannot_be_negative():
    with pytest.raises(ValidationError):
        AchievementDefinition(
            id="x", name="X", description="", icon="", xp_reward=-5, category="special"
        )


def test_session_summary_defaults():
    summary = SessionSummary(
        session_id=1,
        questions_attempted=0,
        questions_correct=0,
        average_score=0.0,
        total_xp_earned=0,
    )

    assert summary.achievements == []
    assert summary.achievement_xp == 0
    assert summary.already_ended is False


def test_xp_breakdown_achievement_xp_defaults_to_zero():
    assert XpBreakdown(base=10, score_bonus=5, multiplier=1.0, daily_bonus=0).achievement_xp == 0
