"""Models Package - session data schema and enumeration results."""

from redis_user_sessions.models.domain import (
    SessionData,
    UserSession,
    expires_to_ms,
    now_ms,
    parse_expires,
    to_unix_ms,
)

__all__ = [
    "SessionData",
    "UserSession",
    "expires_to_ms",
    "now_ms",
    "parse_expires",
    "to_unix_ms",
]
