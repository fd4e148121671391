"""
Pydantic Input Validation Layer

Rejects bad practice input before anything is written, so a failed
validation never leaves a partial attempt, XP credit or streak update.

Validation Categories:
1. Attempt Input - user, event type, score range, category
2. Progress Input - job posting hash, topic lists
"""

import logging
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from prep_gamification.exceptions import ValidationError
from prep_gamification.models.practice import EventType

logger = logging.getLogger(__name__)


# ============================================================================
# ATTEMPT INPUT VALIDATION
# ============================================================================

class AttemptInput(BaseModel):
    """
    Validate a single practice event

    Constraints:
    - user_id is non-empty
    - attempt_type is quiz, voice, flashcard_known or flashcard_practice
    - score is 0-100 and required for quiz/voice
    - flashcard events carry no score (any score given is dropped)
    - category is trimmed; blank becomes None
    """
    user_id: str = Field(..., min_length=1, description="User identifier")
    attempt_type: EventType
    score: Optional[int] = Field(default=None, ge=0, le=100)
    category: Optional[str] = Field(default=None, max_length=200)
    question_text: str = Field(default="", max_length=10000)
    job_description_hash: Optional[str] = Field(default=None, max_length=128)
    session_id: Optional[int] = Field(default=None, ge=1)

    @field_validator('user_id')
    @classmethod
    def validate_user_id(cls, v: str) -> str:
        trimmed = v.strip()
        if not trimmed:
            raise ValueError("User id cannot be only whitespace")
        return trimmed

    @field_validator('score', mode='before')
    @classmethod
    def round_score(cls, v):
        """Fractional scores from graders are rounded to whole points"""
        if isinstance(v, float):
            return round(v)
        return v

    @field_validator('category', 'job_description_hash')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        trimmed = v.strip()
        return trimmed or None

    @model_validator(mode='before')
    @classmethod
    def drop_unscored_score(cls, data):
        """Flashcard scores are ignored, so they are cleared before range checks"""
        if isinstance(data, dict):
            try:
                event = EventType(data.get('attempt_type'))
            except (ValueError, TypeError):
                return data
            if not event.is_scored:
                data = {**data, 'score': None}
        return data

    @model_validator(mode='after')
    def validate_score_for_type(self) -> 'AttemptInput':
        if self.attempt_type.is_scored and self.score is None:
            raise ValueError(f"Score is required for {self.attempt_type.value} attempts")
        return self


# ============================================================================
# PROGRESS INPUT VALIDATION
# ============================================================================

class ProgressInput(BaseModel):
    """
    Validate a study-progress update for one job posting

    Topic lists are trimmed and de-duplicated (first occurrence wins).
    plan_topics is optional; None means "keep the stored plan".
    """
    user_id: str = Field(..., min_length=1)
    job_description_hash: str = Field(..., min_length=1, max_length=128)
    topics_studied: List[str] = Field(default_factory=list)
    topics_completed: List[str] = Field(default_factory=list)
    plan_topics: Optional[List[str]] = None

    @field_validator('topics_studied', 'topics_completed', 'plan_topics')
    @classmethod
    def dedupe_topics(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return None
        seen = []
        for topic in v:
            topic = topic.strip()
            if topic and topic not in seen:
                seen.append(topic)
        return seen


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def format_validation_error(e: Exception, user_id: Optional[str] = None) -> ValidationError:
    """
    Convert a Pydantic validation error into the engine's ValidationError

    Args:
        e: ValidationError from Pydantic
        user_id: User ID if known

    Returns:
        ValidationError naming the first offending field
    """
    from pydantic import ValidationError as PydanticValidationError

    if not isinstance(e, PydanticValidationError):
        return ValidationError(message=str(e), user_id=user_id, cause=e)

    errors = e.errors()
    if not errors:
        return ValidationError(message="Validation failed", user_id=user_id, cause=e)

    # Get first error for simplicity
    first_error = errors[0]
    loc = first_error.get('loc') or ()
    field = str(loc[0]) if loc else None
    msg = first_error.get('msg', 'Invalid value')

    return ValidationError(
        message=msg,
        field=field,
        value=first_error.get('input'),
        user_id=user_id,
        cause=e
    )


def validate_input(model_class: type[BaseModel], **data) -> BaseModel:
    """
    Validate data or raise the engine's ValidationError

    Args:
        model_class: Pydantic model class
        **data: Data to validate

    Returns:
        Validated model instance
    """
    from pydantic import ValidationError as PydanticValidationError

    try:
        return model_class(**data)
    except PydanticValidationError as e:
        logger.warning(f"Validation failed for {model_class.__name__}: {e.error_count()} error(s)")
        raise format_validation_error(e, user_id=data.get('user_id')) from e
