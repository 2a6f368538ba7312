"""redis-user-sessions - Redis session records with per-user session indexes."""

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
from redis_user_sessions.models.domain import SessionData, UserSession
from redis_user_sessions.sessions.manager import SessionManager

__version__ = "2.1.0"

__all__ = [
    "ErrorCode",
    "SessionConflictError",
    "SessionData",
    "SessionError",
    "SessionManager",
    "SessionNotFoundError",
    "SessionStoreError",
    "SessionValidationError",
    "Settings",
    "UserSession",
    "UserSessionsException",
    "get_settings",
]
