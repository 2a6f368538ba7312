"""
Custom exceptions for redis-user-sessions.

This module provides the exception hierarchy surfaced by session operations.
All exceptions inherit from UserSessionsException and include error codes for
consistent error handling and logging.

Taxonomy:
- SessionValidationError: malformed required fields on create/update
- SessionConflictError: attempted userId change on an existing session
- SessionNotFoundError: update of a session that does not exist
- SessionStoreError: unexpected Redis failure in a foreground operation

Background tasks (TTL resync, lazy prune) never raise these; their failures
are logged and counted instead.
"""

from enum import Enum
from typing import Any


# =============================================================================
# Error Codes Enum
# =============================================================================


class ErrorCode(str, Enum):
    """
    Error codes for session exceptions.

    These codes provide a consistent way to identify error types
    in logs and in callers that translate errors to API responses.
    """

    SESSIONS_ERROR = "SESSIONS_ERROR"
    SESSION_ERROR = "SESSION_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFLICT_ERROR = "CONFLICT_ERROR"
    NOT_FOUND_ERROR = "NOT_FOUND_ERROR"
    STORE_ERROR = "STORE_ERROR"


# =============================================================================
# Base Exception
# =============================================================================


class UserSessionsException(Exception):
    """
    Base exception for all redis-user-sessions errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code from ErrorCode enum.
    """

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.SESSIONS_ERROR,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            **kwargs: Additional attributes to set on the exception.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code

        for key, value in kwargs.items():
            setattr(self, key, value)


# =============================================================================
# SessionError
# =============================================================================


class SessionError(UserSessionsException):
    """
    Exception for session management issues.

    Attributes:
        session_id: ID of the affected session (if known).
    """

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        error_code: str = ErrorCode.SESSION_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.session_id = session_id


class SessionValidationError(SessionError):
    """
    Exception for malformed session data.

    Raised when `userId` or `expires` is missing or has the wrong shape.

    Note: Named SessionValidationError to avoid conflict with
    pydantic.ValidationError.

    Attributes:
        field: Name of the field that failed validation.
    """

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        field: str | None = None,
        error_code: str = ErrorCode.VALIDATION_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, session_id, error_code, **kwargs)
        self.field = field


class SessionConflictError(SessionError):
    """
    Exception for an attempted change of a session's userId.

    The userId of a session is immutable once a record exists under its id.

    Attributes:
        existing_user_id: userId currently stored for the session.
        requested_user_id: userId the caller attempted to write.
    """

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        existing_user_id: str | None = None,
        requested_user_id: str | None = None,
        error_code: str = ErrorCode.CONFLICT_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, session_id, error_code, **kwargs)
        self.existing_user_id = existing_user_id
        self.requested_user_id = requested_user_id


class SessionNotFoundError(SessionError):
    """Raised when updating a session that does not exist."""

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        error_code: str = ErrorCode.NOT_FOUND_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, session_id, error_code, **kwargs)


# =============================================================================
# SessionStoreError
# =============================================================================


class SessionStoreError(UserSessionsException):
    """
    Exception raised for session store errors.

    Raised when Redis operations fail due to connection issues,
    corrupt serialized data, or other storage-related problems.

    Attributes:
        key: Redis key involved in the failed operation (if known).
    """

    def __init__(
        self,
        message: str,
        key: str | None = None,
        error_code: str = ErrorCode.STORE_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.key = key
