"""Read-side models for dashboards"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import date, datetime

from prep_gamification.models.achievement import AchievementStatus


class LevelDefinition(BaseModel):
    """One row of the level table"""
    model_config = ConfigDict(frozen=True)

    level: int = Field(..., ge=1)
    title: str
    xp_required: int = Field(..., ge=0)


class StreakSummary(BaseModel):
    current: int = 0
    longest: int = 0
    multiplier: float = 1.0
    last_practice_date: Optional[date] = None


class TodayStats(BaseModel):
    questions_answered: int = 0
    xp_earned: int = 0
    sessions_completed: int = 0


class GamificationStats(BaseModel):
    """Full gamification snapshot for a user"""
    total_xp: int
    level: int
    level_title: str
    xp_for_current_level: int
    xp_for_next_level: int
    xp_into_level: int
    xp_needed_for_next: int
    progress_percent: int
    streak: StreakSummary
    achievements: List[AchievementStatus]
    today_stats: TodayStats


class SkillStat(BaseModel):
    """Per-category mastery"""
    category: str
    mastery: int
    avg_score: float
    total_attempts: int
    unique_questions: int = 0
    correct_count: int = 0
    last_practiced: Optional[datetime] = None


class WeeklyStats(BaseModel):
    questions_this_week: int = 0
    questions_last_week: int = 0
    change_percent: int = 0


class SkillStats(BaseModel):
    skills: List[SkillStat] = Field(default_factory=list)
    weekly_stats: WeeklyStats = Field(default_factory=WeeklyStats)
