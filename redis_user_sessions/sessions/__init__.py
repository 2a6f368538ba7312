"""
Sessions Package

This package provides Redis session records with a per-user session index:
- SessionStore: create/read/update/delete of a single session record
- UserSessionIndex: per-user sorted set of session ids, scored by expiry
- SessionManager: facade adding per-user enumeration, update and delete
"""

from redis_user_sessions.sessions.background import BackgroundTasks
from redis_user_sessions.sessions.client import create_redis_client
from redis_user_sessions.sessions.index import UserSessionIndex
from redis_user_sessions.sessions.keys import get_session_key, get_user_sessions_key
from redis_user_sessions.sessions.manager import SessionManager
from redis_user_sessions.sessions.store import SessionStore

__all__ = [
    "BackgroundTasks",
    "SessionManager",
    "SessionStore",
    "UserSessionIndex",
    "create_redis_client",
    "get_session_key",
    "get_user_sessions_key",
]
