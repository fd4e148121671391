"""Unit tests for input validation"""
import pytest
from pydantic import ValidationError as PydanticValidationError

from prep_gamification.exceptions import ValidationError
from prep_gamification.models.practice import EventType
from prep_gamification.validators import (
    AttemptInput,
    ProgressInput,
    format_validation_error,
    validate_input,
)


class TestAttemptInput:

    def test_valid_quiz(self):
        attempt = AttemptInput(user_id=" user-1 ", attempt_type="quiz", score=85, category="  graphs ")

        assert attempt.user_id == "user-1"
        assert attempt.attempt_type == EventType.QUIZ
        assert attempt.category == "graphs"

    def test_fractional_score_rounded(self):
        assert AttemptInput(user_id="u", attempt_type="voice", score=87.6).score == 88

    def test_blank_category_is_none(self):
        assert AttemptInput(user_id="u", attempt_type="quiz", score=50, category="   ").category is None

    def test_flashcard_score_dropped(self):
        attempt = AttemptInput(user_id="u", attempt_type="flashcard_practice", score=40)

        assert attempt.score is None

    @pytest.mark.parametrize("score", [150, -3, "n/a"])
    def test_flashcard_ignores_out_of_range_score(self, score):
        attempt = AttemptInput(user_id="u", attempt_type="flashcard_known", score=score)

        assert attempt.score is None

    def test_quiz_without_score_rejected(self):
        with pytest.raises(PydanticValidationError):
            AttemptInput(user_id="u", attempt_type="quiz")

    @pytest.mark.parametrize("score", [-1, 101])
    def test_score_out_of_range(self, score):
        with pytest.raises(PydanticValidationError):
            AttemptInput(user_id="u", attempt_type="quiz", score=score)

    def test_unknown_type_rejected(self):
        with pytest.raises(PydanticValidationError):
            AttemptInput(user_id="u", attempt_type="essay", score=50)

    def test_whitespace_user_rejected(self):
        with pytest.raises(PydanticValidationError):
            AttemptInput(user_id="   ", attempt_type="quiz", score=50)


class TestProgressInput:

    def test_topics_deduplicated_in_order(self):
        progress = ProgressInput(
            user_id="u",
            job_description_hash="job",
            topics_studied=["DP", "Graphs", "DP", " Graphs", ""],
        )

        assert progress.topics_studied == ["DP", "Graphs"]
        assert progress.topics_completed == []
        assert progress.plan_topics is None

    def test_job_hash_required(self):
        with pytest.raises(PydanticValidationError):
            ProgressInput(user_id="u", job_description_hash="")


class TestErrorConversion:

    def test_format_validation_error_names_field(self):
        with pytest.raises(PydanticValidationError) as exc_info:
            AttemptInput(user_id="u", attempt_type="quiz", score=140)

        error = format_validation_error(exc_info.value, user_id="u")

        assert isinstance(error, ValidationError)
        assert error.field == "score"
        assert error.value == 140
        assert error.user_id == "u"

    def test_non_pydantic_error(self):
        error = format_validation_error(ValueError("nope"))

        assert isinstance(error, ValidationError)
        assert error.message == "nope"

    def test_validate_input_raises_engine_error(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_input(AttemptInput, user_id="u", attempt_type="essay", score=10)

        assert exc_info.value.field == "attempt_type"

    def test_validate_input_returns_model(self):
        attempt = validate_input(AttemptInput, user_id="u", attempt_type="voice", score=70)

        assert attempt.score == 70
