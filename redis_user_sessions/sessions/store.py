"""
Session Store - Redis-backed session records.

Each session is one JSON blob under `session:<id>` whose native Redis expiry
is the record's own `expires` timestamp (SET ... PXAT). Every write also
updates the owner's UserSessionIndex and schedules a background resync of
the index TTL; every read hit schedules a background prune of the index.

The record write and the index write are two independent commands issued
concurrently, not a transaction. A failure between them leaves the index
pointing at a missing record (healed by lazy prune) or a record missing from
the index (healed by the next write of that session).

Pattern: Repository pattern (Percival & Gregory pp. 86)
Pattern: Dependency injection for Redis client (Sinha pp. 89-90)
"""

import asyncio
import json
import secrets
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from redis_user_sessions.core.config import get_settings
from redis_user_sessions.core.exceptions import (
    SessionConflictError,
    SessionNotFoundError,
    SessionStoreError,
    SessionValidationError,
)
from redis_user_sessions.models.domain import SessionData
from redis_user_sessions.observability.logging import get_logger
from redis_user_sessions.observability.metrics import track_operation
from redis_user_sessions.sessions.index import UserSessionIndex
from redis_user_sessions.sessions.keys import get_session_key

logger = get_logger(__name__)


def _validate(data: Any, session_id: Optional[str]) -> SessionData:
    """Validate the minimum session schema, mapping pydantic errors to ours."""
    try:
        return SessionData.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise SessionValidationError(
            f"Invalid session data: {first['msg']}",
            session_id=session_id,
            field=field,
        ) from e


class SessionStore:
    """
    Create, read, update and delete individual session records.

    Attributes:
        _redis: The Redis client instance.
        _index: Index kept in step with every record write and delete.
        _session_id_bytes: Random bytes used for generated ids.

    Example:
        >>> store = SessionStore(redis_client=client, index=UserSessionIndex(client))
        >>> session_id = await store.create(
        ...     {"userId": "u_1", "expires": "2030-01-01T00:00:00.000Z"}
        ... )
        >>> await store.read(session_id)
        {'userId': 'u_1', 'expires': '2030-01-01T00:00:00.000Z'}
    """

    def __init__(
        self,
        redis_client: Redis,
        index: UserSessionIndex,
        session_id_bytes: Optional[int] = None,
    ) -> None:
        """
        Initialize SessionStore with Redis client and user index.

        Args:
            redis_client: Async Redis client instance.
            index: UserSessionIndex sharing the same client.
            session_id_bytes: Random bytes for generated session ids.
                              Defaults to settings.session_id_bytes.
        """
        self._redis: Redis = redis_client
        self._index: UserSessionIndex = index

        if session_id_bytes is None:
            self._session_id_bytes: int = get_settings().session_id_bytes
        else:
            self._session_id_bytes = session_id_bytes

    def generate_session_id(self) -> str:
        """Return a new URL-safe session id from a CSPRNG."""
        return secrets.token_urlsafe(self._session_id_bytes)

    # =========================================================================
    # Create
    # =========================================================================

    async def create(
        self,
        data: Mapping[str, Any],
        session_id: Optional[str] = None,
    ) -> str:
        """
        Write a session record and index it under its user.

        An existing record under the same id is fully replaced, provided it
        belongs to the same user.

        Args:
            data: Session data with `userId` and `expires`; other keys are stored as-is.
            session_id: Id to write under. Generated when omitted.

        Returns:
            The session id used.

        Raises:
            SessionValidationError: If `userId` or `expires` is missing or malformed.
            SessionConflictError: If the id already belongs to another user.
            SessionStoreError: If a Redis command fails.
        """
        with track_operation("create"):
            return await self._create(data, session_id)

    async def _create(
        self,
        data: Mapping[str, Any],
        session_id: Optional[str],
    ) -> str:
        session = _validate(data, session_id)

        if session_id is None:
            session_id = self.generate_session_id()

        current = await self.fetch(session_id)
        if current is not None and current.get("userId") != session.user_id:
            raise SessionConflictError(
                f"Cannot change the userId value in sessions. Session: {session_id}",
                session_id=session_id,
                existing_user_id=current.get("userId"),
                requested_user_id=session.user_id,
            )

        try:
            payload = json.dumps(dict(data))
        except (TypeError, ValueError) as e:
            raise SessionValidationError(
                f"Session data is not JSON serializable: {e}",
                session_id=session_id,
            ) from e

        expires_ms = session.expires_ms
        key = get_session_key(session_id)
        try:
            await asyncio.gather(
                self._redis.set(key, payload, pxat=expires_ms),
                self._index.add(session.user_id, session_id, expires_ms),
            )
        except RedisError as e:
            raise SessionStoreError(
                f"Failed to save session {session_id}: {e}", key=key
            ) from e

        self._index.schedule_resync(session.user_id)

        logger.debug(
            "session written",
            session_id=session_id,
            user_id=session.user_id,
            expires_ms=expires_ms,
        )
        return session_id

    # =========================================================================
    # Read
    # =========================================================================

    async def read(self, session_id: str) -> Optional[dict[str, Any]]:
        """
        Read a session record.

        A hit schedules a background prune of the owner's index.

        Args:
            session_id: The session's unique identifier.

        Returns:
            The stored session data, or None if absent or expired.

        Raises:
            SessionStoreError: If the Redis command fails or the blob is corrupt.
        """
        with track_operation("read"):
            data = await self.fetch(session_id)

            if data is None:
                return None

            user_id = data.get("userId")
            if isinstance(user_id, str):
                self._index.schedule_prune(user_id)

            return data

    async def fetch(self, session_id: str) -> Optional[dict[str, Any]]:
        """Get and decode a record without scheduling index maintenance."""
        key = get_session_key(session_id)
        try:
            raw = await self._redis.get(key)
        except RedisError as e:
            raise SessionStoreError(
                f"Failed to get session {session_id}: {e}", key=key
            ) from e

        if raw is None:
            return None

        try:
            data = json.loads(raw)
        except ValueError as e:
            raise SessionStoreError(
                f"Session {session_id} holds invalid JSON: {e}", key=key
            ) from e

        if not isinstance(data, dict):
            raise SessionStoreError(
                f"Session {session_id} does not hold a JSON object", key=key
            )
        return data

    # =========================================================================
    # Update
    # =========================================================================

    async def update(self, session_id: str, data: Mapping[str, Any]) -> None:
        """
        Shallow-merge `data` over an existing session and rewrite it.

        Only top-level keys are merged. A changed `expires` moves the
        session's score in the index and its record TTL together.

        Args:
            session_id: The session's unique identifier.
            data: Partial session data.

        Raises:
            SessionNotFoundError: If the session does not exist.
            SessionConflictError: If `data` carries a different `userId`.
            SessionValidationError: If the merged data is malformed.
            SessionStoreError: If a Redis command fails.
        """
        with track_operation("update"):
            current = await self.fetch(session_id)

            if current is None:
                raise SessionNotFoundError(
                    f'Session "{session_id}" does not exist and therefore cannot be updated',
                    session_id=session_id,
                )

            if "userId" in data and data["userId"] != current.get("userId"):
                raise SessionConflictError(
                    f"Cannot change the userId value in sessions. Session: {session_id}",
                    session_id=session_id,
                    existing_user_id=current.get("userId"),
                    requested_user_id=data["userId"],
                )

            await self._create({**current, **data}, session_id)

    # =========================================================================
    # Delete
    # =========================================================================

    async def delete(self, session_id: str) -> None:
        """
        Delete a session record and its index entry.

        Deleting a session that does not exist is a no-op.

        Raises:
            SessionStoreError: If a Redis command fails.
        """
        with track_operation("delete"):
            current = await self.fetch(session_id)

            if current is None:
                return

            user_id = current.get("userId")
            key = get_session_key(session_id)
            if not isinstance(user_id, str):
                # No owner recorded, so no index entry to remove.
                try:
                    await self._redis.delete(key)
                except RedisError as e:
                    raise SessionStoreError(
                        f"Failed to delete session {session_id}: {e}", key=key
                    ) from e
                return

            try:
                await asyncio.gather(
                    self._redis.delete(key),
                    self._index.remove(user_id, session_id),
                )
            except RedisError as e:
                raise SessionStoreError(
                    f"Failed to delete session {session_id}: {e}", key=key
                ) from e

            self._index.schedule_resync(user_id)
            logger.debug("session deleted", session_id=session_id, user_id=user_id)

    async def delete_records(self, session_ids: list[str]) -> int:
        """
        Delete the records for `session_ids` without touching any index.

        Returns:
            Number of records that existed and were removed.

        Raises:
            SessionStoreError: If the Redis command fails.
        """
        if not session_ids:
            return 0

        keys = [get_session_key(session_id) for session_id in session_ids]
        try:
            return int(await self._redis.delete(*keys))
        except RedisError as e:
            raise SessionStoreError(f"Failed to delete session records: {e}") from e
