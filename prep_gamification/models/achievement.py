"""Achievement models for gamification"""
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class AchievementCategory(str, Enum):
    """Achievement categories"""
    GETTING_STARTED = "getting_started"
    VOLUME = "volume"
    SCORES = "scores"
    STREAKS = "streaks"
    PROGRESS = "progress"
    SPECIAL = "special"


class AchievementDefinition(BaseModel):
    """Achievement definition (constant catalog entry)"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    icon: str
    xp_reward: int = Field(..., ge=0)
    category: AchievementCategory


class AchievementStatus(BaseModel):
    """Catalog entry annotated with the user's unlock state"""
    id: str
    name: str
    description: str
    icon: str
    xp_reward: int
    category: AchievementCategory
    unlocked: bool = False
    unlocked_at: Optional[datetime] = None
