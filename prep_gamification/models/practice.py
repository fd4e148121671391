"""Practice activity models: event types, attempt and session results"""
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any

from prep_gamification.models.achievement import AchievementDefinition


class EventType(str, Enum):
    """Practice events that earn XP"""
    QUIZ = "quiz"
    VOICE = "voice"
    FLASHCARD_KNOWN = "flashcard_known"
    FLASHCARD_PRACTICE = "flashcard_practice"

    @property
    def is_scored(self) -> bool:
        return self in (EventType.QUIZ, EventType.VOICE)

    @property
    def attempt_type(self) -> "AttemptType":
        """Attempt Log type for this event"""
        if self.is_scored:
            return AttemptType(self.value)
        return AttemptType.FLASHCARD


class AttemptType(str, Enum):
    """Attempt Log row types"""
    QUIZ = "quiz"
    VOICE = "voice"
    FLASHCARD = "flashcard"


class XpBreakdown(BaseModel):
    """How an attempt's XP was computed"""
    base: int
    score_bonus: int
    multiplier: float
    daily_bonus: int
    achievement_xp: int = 0


class AttemptResult(BaseModel):
    """Result returned to the caller after recording an attempt"""
    attempt_id: Optional[int] = None
    xp_earned: int
    xp_breakdown: XpBreakdown
    total_xp: int
    level: int
    level_title: str
    level_up: bool
    new_achievements: List[AchievementDefinition] = Field(default_factory=list)


class SessionSummary(BaseModel):
    """Result of closing a practice session"""
    session_id: int
    questions_attempted: int
    questions_correct: int
    average_score: float
    total_xp_earned: int
    achievements: List[AchievementDefinition] = Field(default_factory=list)
    achievement_xp: int = 0
    streak_update: Optional[Dict[str, Any]] = None
    already_ended: bool = False
