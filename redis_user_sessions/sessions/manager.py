"""Session Manager - caller-facing facade over SessionStore and UserSessionIndex.

Single-session operations delegate to SessionStore. Per-user operations read
the user's index first and then fan out per-session work concurrently.
"""

import asyncio
from collections.abc import Mapping
from typing import Any, Optional

from redis.asyncio import Redis

from redis_user_sessions.core.config import Settings, get_settings
from redis_user_sessions.core.exceptions import SessionNotFoundError
from redis_user_sessions.models.domain import UserSession
from redis_user_sessions.observability.logging import (
    configure_logging_from_settings,
    get_logger,
)
from redis_user_sessions.observability.metrics import track_operation
from redis_user_sessions.sessions.background import BackgroundTasks
from redis_user_sessions.sessions.client import create_redis_client
from redis_user_sessions.sessions.index import UserSessionIndex
from redis_user_sessions.sessions.store import SessionStore

logger = get_logger(__name__)


class SessionManager:
    """Manage session records and the per-user session index.

    Args:
        redis_client: Pre-established async Redis client. Not closed by aclose().
        session_id_bytes: Random bytes for generated session ids.
            Defaults to settings value.
        background: Runner for fire-and-forget index maintenance.

    Example:
        >>> manager = SessionManager(redis_client)
        >>> session_id = await manager.create_session(
        ...     {"userId": "u_1", "expires": "2030-01-01T00:00:00.000Z"}
        ... )
        >>> sessions = await manager.get_user_sessions("u_1")
    """

    def __init__(
        self,
        redis_client: Redis,
        session_id_bytes: int | None = None,
        background: BackgroundTasks | None = None,
    ) -> None:
        configure_logging_from_settings()
        self._redis = redis_client
        self._owns_client = False
        self._background = background if background is not None else BackgroundTasks()
        self._index = UserSessionIndex(redis_client, self._background)
        self._store = SessionStore(redis_client, self._index, session_id_bytes)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "SessionManager":
        """Build a manager with its own Redis client.

        The client is closed by aclose().
        """
        settings = settings or get_settings()
        manager = cls(
            create_redis_client(settings),
            session_id_bytes=settings.session_id_bytes,
        )
        manager._owns_client = True
        return manager

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def index(self) -> UserSessionIndex:
        return self._index

    @property
    def background(self) -> BackgroundTasks:
        return self._background

    # =========================================================================
    # Single session
    # =========================================================================

    async def create_session(
        self,
        data: Mapping[str, Any],
        session_id: Optional[str] = None,
    ) -> str:
        """Create (or fully replace) a session. Returns the session id used."""
        return await self._store.create(data, session_id)

    async def read_session(self, session_id: str) -> Optional[dict[str, Any]]:
        """Read a session. Returns None if it does not exist."""
        return await self._store.read(session_id)

    async def update_session(self, session_id: str, data: Mapping[str, Any]) -> None:
        """Shallow-merge `data` into an existing session.

        Raises:
            SessionNotFoundError: If the session does not exist.
            SessionConflictError: If `data` changes `userId`.
        """
        await self._store.update(session_id, data)

    async def delete_session(self, session_id: str) -> None:
        """Delete a session. No-op if it does not exist."""
        await self._store.delete(session_id)

    # =========================================================================
    # Per user
    # =========================================================================

    async def get_user_sessions(self, user_id: str) -> list[UserSession]:
        """List a user's live sessions, soonest-expiring first.

        Index entries whose record has already expired are skipped, and
        their presence schedules a background prune of the index.

        Args:
            user_id: Owner of the sessions.

        Returns:
            UserSession objects in ascending expiry order.
        """
        with track_operation("get_user_sessions"):
            session_ids = await self._index.list_session_ids(user_id)
            records = await asyncio.gather(
                *(self._store.fetch(session_id) for session_id in session_ids)
            )

            sessions = [
                UserSession(session_id=session_id, data=data)
                for session_id, data in zip(session_ids, records)
                if data is not None
            ]

            if len(sessions) != len(session_ids):
                logger.debug(
                    "stale user index entries found",
                    user_id=user_id,
                    stale=len(session_ids) - len(sessions),
                )
                self._index.schedule_prune(user_id)

            return sessions

    async def update_user_sessions(
        self,
        user_id: str,
        data: Mapping[str, Any],
    ) -> None:
        """Apply the same partial update to every live session of a user.

        Updates run concurrently. A session that expires between enumeration
        and its update is skipped. Any other failure is raised once every
        sibling update has finished.

        Args:
            user_id: Owner of the sessions.
            data: Partial session data, shallow-merged into each session.
        """
        with track_operation("update_user_sessions"):
            sessions = await self.get_user_sessions(user_id)
            results = await asyncio.gather(
                *(self._store.update(s.session_id, data) for s in sessions),
                return_exceptions=True,
            )

            failures: list[BaseException] = []
            for session, result in zip(sessions, results):
                if isinstance(result, SessionNotFoundError):
                    logger.info(
                        "session expired before update, skipped",
                        user_id=user_id,
                        session_id=session.session_id,
                    )
                elif isinstance(result, BaseException):
                    logger.warning(
                        "session update failed",
                        user_id=user_id,
                        session_id=session.session_id,
                        exc_info=result,
                    )
                    failures.append(result)

            if failures:
                raise failures[0]

    async def delete_user_sessions(self, user_id: str) -> None:
        """Delete a user's index and every session record listed in it.

        Records are deleted without checking freshness first; deleting an
        already-expired record is harmless.
        """
        with track_operation("delete_user_sessions"):
            session_ids = await self._index.list_session_ids(user_id)
            await asyncio.gather(
                self._index.clear(user_id),
                self._store.delete_records(session_ids),
            )
            logger.debug(
                "user sessions deleted", user_id=user_id, count=len(session_ids)
            )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def wait_for_background_tasks(self) -> None:
        """Wait for pending TTL resync and prune tasks to finish."""
        await self._background.wait()

    async def aclose(self) -> None:
        """Cancel pending background tasks and close an owned Redis client."""
        await self._background.cancel()
        if self._owns_client:
            await self._redis.aclose()

    async def __aenter__(self) -> "SessionManager":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
