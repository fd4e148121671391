"""
Exception hierarchy for the gamification engine

Every engine error is logged once, when it is created, with the user and
operation it belongs to. Driver errors from psycopg are converted at the
service boundary by wrap_external_exception().
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
import logging

import psycopg

logger = logging.getLogger(__name__)


class GamificationError(Exception):
    """Base class for engine errors"""

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        logger.error(
            f"{self.__class__.__name__}: {message} "
            f"(user={user_id}, operation={operation}, context={self.context})",
            exc_info=cause
        )


class ValidationError(GamificationError):
    """Input rejected before anything was written"""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None, **kwargs):
        self.field = field
        self.value = value
        super().__init__(message, context={"field": field, "value": value}, **kwargs)


class DatabaseError(GamificationError):
    """Base class for storage failures"""


class ConnectionError(DatabaseError):
    """Database unreachable or connection dropped mid-operation"""


class QueryError(DatabaseError):
    """Statement failed; sqlstate is the PostgreSQL error code when known"""

    def __init__(self, message: str, sqlstate: Optional[str] = None, **kwargs):
        self.sqlstate = sqlstate
        super().__init__(message, **kwargs)


class RecordNotFoundError(DatabaseError):
    """Unknown record, or one owned by a different user"""

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message,
            context={"record_type": record_type, "record_id": record_id},
            **kwargs
        )


class ConfigurationError(GamificationError):
    """Invalid or missing setting"""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        self.config_key = config_key
        super().__init__(message, context={"config_key": config_key}, **kwargs)


def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> GamificationError:
    """
    Convert a psycopg error into the engine's hierarchy

    OperationalError becomes ConnectionError, any other driver error becomes
    QueryError, and engine errors are returned unchanged.
    """
    if isinstance(error, GamificationError):
        return error

    if isinstance(error, psycopg.OperationalError):
        return ConnectionError(
            f"Database connection failed during {operation}: {error}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
    if isinstance(error, psycopg.Error):
        return QueryError(
            f"Database query failed during {operation}: {error}",
            sqlstate=error.sqlstate,
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )

    return GamificationError(
        f"{operation} failed: {error}",
        user_id=user_id,
        operation=operation,
        context=context,
        cause=error
    )
