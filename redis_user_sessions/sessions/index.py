"""
User Session Index

Maintains one sorted set per user (`user:<userId>:sessions`) whose members
are session ids scored by their expiry in epoch milliseconds, soonest first.

Two properties are kept eventually, not immediately:
- the set's own absolute expiry equals its highest member score, so Redis
  drops the whole index once the user's last session lapses;
- members whose session record has expired are removed lazily, by prune
  passes triggered from reads and enumerations.

No MULTI/EXEC is used anywhere. Each command is atomic on its own and
resync/prune are idempotent, so a failed or interleaved pass only delays
convergence.
"""

from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from redis_user_sessions.core.exceptions import SessionStoreError
from redis_user_sessions.models.domain import now_ms
from redis_user_sessions.observability.logging import get_logger
from redis_user_sessions.observability.metrics import record_pruned_entries
from redis_user_sessions.sessions.background import BackgroundTasks
from redis_user_sessions.sessions.keys import get_user_sessions_key

logger = get_logger(__name__)


def _as_str(member: str | bytes) -> str:
    if isinstance(member, bytes):
        return member.decode("utf-8")
    return member


class UserSessionIndex:
    """
    Per-user ordered index of session ids.

    Attributes:
        _redis: The Redis client instance.
        _background: Runner for fire-and-forget resync/prune tasks.
    """

    def __init__(
        self,
        redis_client: Redis,
        background: Optional[BackgroundTasks] = None,
    ) -> None:
        self._redis: Redis = redis_client
        self._background: BackgroundTasks = background or BackgroundTasks()

    @property
    def background(self) -> BackgroundTasks:
        return self._background

    # =========================================================================
    # Membership
    # =========================================================================

    async def add(self, user_id: str, session_id: str, expires_ms: int) -> None:
        """
        Add `session_id` to the user's index, or move it to a new score.

        ZADD updates the score in place for an existing member.

        Raises:
            SessionStoreError: If the Redis command fails.
        """
        key = get_user_sessions_key(user_id)
        try:
            await self._redis.zadd(key, {session_id: expires_ms})
        except RedisError as e:
            raise SessionStoreError(
                f"Failed to index session {session_id} for user {user_id}: {e}",
                key=key,
            ) from e

    async def remove(self, user_id: str, session_id: str) -> None:
        """
        Remove `session_id` from the user's index.

        Raises:
            SessionStoreError: If the Redis command fails.
        """
        key = get_user_sessions_key(user_id)
        try:
            await self._redis.zrem(key, session_id)
        except RedisError as e:
            raise SessionStoreError(
                f"Failed to unindex session {session_id} for user {user_id}: {e}",
                key=key,
            ) from e

    async def list_session_ids(self, user_id: str) -> list[str]:
        """
        List the user's indexed session ids, soonest-expiring first.

        The result may include ids whose record has already expired.

        Raises:
            SessionStoreError: If the Redis command fails.
        """
        key = get_user_sessions_key(user_id)
        try:
            members = await self._redis.zrange(key, 0, -1)
        except RedisError as e:
            raise SessionStoreError(
                f"Failed to list sessions for user {user_id}: {e}", key=key
            ) from e
        return [_as_str(member) for member in members]

    async def clear(self, user_id: str) -> None:
        """
        Delete the user's index key outright.

        Raises:
            SessionStoreError: If the Redis command fails.
        """
        key = get_user_sessions_key(user_id)
        try:
            await self._redis.delete(key)
        except RedisError as e:
            raise SessionStoreError(
                f"Failed to clear sessions index for user {user_id}: {e}", key=key
            ) from e

    async def get_expiry(self, user_id: str) -> Optional[int]:
        """
        Absolute expiry of the user's index in epoch milliseconds.

        Returns:
            The expiry, or None if the key is missing or has no expiry.

        Raises:
            SessionStoreError: If the Redis command fails.
        """
        key = get_user_sessions_key(user_id)
        try:
            expiry = await self._redis.pexpiretime(key)
        except RedisError as e:
            raise SessionStoreError(
                f"Failed to read index expiry for user {user_id}: {e}", key=key
            ) from e
        if expiry is None or expiry < 0:
            return None
        return int(expiry)

    # =========================================================================
    # Maintenance
    # =========================================================================

    async def resync_ttl(self, user_id: str) -> Optional[int]:
        """
        Set the index's absolute expiry to its highest member score.

        Does nothing when the index has no members. Safe to run repeatedly
        and concurrently: every pass writes the maximum it observes.

        Returns:
            The expiry applied, or None if the index is empty.
        """
        key = get_user_sessions_key(user_id)
        largest = await self._redis.zrange(key, -1, -1, withscores=True)

        if not largest:
            return None

        _, score = largest[0]
        expiry_ms = int(score)
        await self._redis.pexpireat(key, expiry_ms)

        logger.debug("user index ttl resynced", user_id=user_id, expires_ms=expiry_ms)
        return expiry_ms

    async def prune_expired(self, user_id: str, now: Optional[int] = None) -> int:
        """
        Remove members whose score is at or before `now`.

        Args:
            user_id: Owner of the index.
            now: Cut-off in epoch milliseconds. Defaults to the current time.

        Returns:
            Number of members removed.
        """
        cutoff = now_ms() if now is None else now
        removed = await self._redis.zremrangebyscore(
            get_user_sessions_key(user_id), "-inf", cutoff
        )
        removed = int(removed or 0)

        if removed:
            record_pruned_entries(removed)
            logger.debug("user index pruned", user_id=user_id, removed=removed)
        return removed

    def schedule_resync(self, user_id: str) -> None:
        """Run resync_ttl() in the background."""
        self._background.spawn("resync_ttl", self.resync_ttl(user_id), user_id=user_id)

    def schedule_prune(self, user_id: str) -> None:
        """Run prune_expired() in the background."""
        self._background.spawn(
            "prune_expired", self.prune_expired(user_id), user_id=user_id
        )
