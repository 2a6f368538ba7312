"""
Core module for redis-user-sessions.

This module contains configuration and exceptions.
"""

from redis_user_sessions.core.config import Settings, get_settings
from redis_user_sessions.core.exceptions import (
    ErrorCode,
    SessionConflictError,
    SessionError,
    SessionNotFoundError,
    SessionStoreError,
    SessionValidationError,
    UserSessionsException,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Exceptions
    "ErrorCode",
    "UserSessionsException",
    "SessionError",
    "SessionValidationError",
    "SessionConflictError",
    "SessionNotFoundError",
    "SessionStoreError",
]
