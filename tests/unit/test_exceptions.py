"""Unit tests for custom exception hierarchy"""
import pytest
import psycopg
from datetime import datetime

from prep_gamification.exceptions import (
    GamificationError,
    ValidationError,
    DatabaseError,
    ConnectionError,
    QueryError,
    RecordNotFoundError,
    ConfigurationError,
    wrap_external_exception
)


class TestGamificationError:
    """Test base exception class"""

    def test_basic_exception(self):
        error = GamificationError("Test error")
        assert error.message == "Test error"
        assert str(error) == "Test error"
        assert error.context == {}
        assert isinstance(error.timestamp, datetime)

    def test_exception_with_context(self):
        error = GamificationError(
            "Failed to credit XP",
            user_id="user-1",
            operation="award_xp",
            context={"amount": 25}
        )
        assert error.user_id == "user-1"
        assert error.operation == "award_xp"
        assert error.context == {"amount": 25}

    def test_logged_on_creation(self, caplog):
        with caplog.at_level("ERROR"):
            GamificationError("Visible in logs", user_id="user-7", operation="end_session")

        assert "Visible in logs" in caplog.text
        assert "user=user-7" in caplog.text
        assert "operation=end_session" in caplog.text


class TestSubclasses:

    def test_validation_error_fields(self):
        error = ValidationError("must be 0-100", field="score", value=140)

        assert error.field == "score"
        assert error.value == 140
        assert error.context == {"field": "score", "value": 140}

    def test_database_hierarchy(self):
        assert issubclass(ConnectionError, DatabaseError)
        assert issubclass(QueryError, DatabaseError)
        assert issubclass(RecordNotFoundError, DatabaseError)
        assert issubclass(DatabaseError, GamificationError)

    def test_record_not_found_fields(self):
        error = RecordNotFoundError("missing", record_type="Practice session", record_id="9")

        assert error.record_type == "Practice session"
        assert error.record_id == "9"
        assert error.context == {"record_type": "Practice session", "record_id": "9"}

    def test_configuration_error(self):
        error = ConfigurationError("bad zone", config_key="PRACTICE_TIMEZONE")

        assert error.config_key == "PRACTICE_TIMEZONE"


class TestWrapExternalException:

    def test_operational_error_becomes_connection_error(self):
        wrapped = wrap_external_exception(
            psycopg.OperationalError("connection refused"), operation="award_xp", user_id="user-1"
        )

        assert isinstance(wrapped, ConnectionError)
        assert wrapped.operation == "award_xp"
        assert isinstance(wrapped.cause, psycopg.OperationalError)

    def test_other_driver_error_becomes_query_error(self):
        wrapped = wrap_external_exception(psycopg.DataError("bad value"), operation="insert_attempt")

        assert isinstance(wrapped, QueryError)
        assert wrapped.operation == "insert_attempt"

    def test_engine_error_passes_through(self):
        original = ValidationError("bad", field="score")

        assert wrap_external_exception(original, operation="record_attempt") is original

    def test_unknown_error_falls_back_to_base(self):
        wrapped = wrap_external_exception(RuntimeError("boom"), operation="end_session")

        assert type(wrapped) is GamificationError
        assert "end_session failed" in wrapped.message
