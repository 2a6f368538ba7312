"""
Redis key naming for session records and user session indexes.

These formats are shared with existing deployments and must not change.
"""

SESSION_KEY_PREFIX = "session:"
USER_KEY_PREFIX = "user:"
USER_SESSIONS_KEY_SUFFIX = ":sessions"


def get_session_key(session_id: str) -> str:
    """Key of the serialized record for `session_id`."""
    return f"{SESSION_KEY_PREFIX}{session_id}"


def get_user_sessions_key(user_id: str) -> str:
    """Key of the sorted set indexing `user_id`'s sessions by expiry."""
    return f"{USER_KEY_PREFIX}{user_id}{USER_SESSIONS_KEY_SUFFIX}"
