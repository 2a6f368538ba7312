"""
Tests for UserSessionIndex - per-user sorted set of session ids.

Pattern: FakeRepository for testing (Percival & Gregory pp. 157)
"""

from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError

from redis_user_sessions.core.exceptions import SessionStoreError
from redis_user_sessions.sessions.background import BackgroundTasks
from redis_user_sessions.sessions.index import UserSessionIndex

USER_KEY = "user:u_1:sessions"


@pytest_asyncio.fixture
async def index(fake_redis):
    background = BackgroundTasks()
    yield UserSessionIndex(fake_redis, background)
    await background.wait()


# =============================================================================
# Membership
# =============================================================================


class TestMembership:
    """Tests for add/remove/list/clear."""

    @pytest.mark.asyncio
    async def test_add_uses_expiry_as_score(self, index, fake_redis, ms_in):
        expires = ms_in(minutes=10)

        await index.add("u_1", "s1", expires)

        assert await fake_redis.zscore(USER_KEY, "s1") == expires

    @pytest.mark.asyncio
    async def test_add_existing_member_moves_score(self, index, fake_redis, ms_in):
        await index.add("u_1", "s1", ms_in(minutes=10))
        later = ms_in(minutes=30)

        await index.add("u_1", "s1", later)

        assert await fake_redis.zcard(USER_KEY) == 1
        assert await fake_redis.zscore(USER_KEY, "s1") == later

    @pytest.mark.asyncio
    async def test_list_is_ascending_by_expiry(self, index, ms_in):
        await index.add("u_1", "late", ms_in(minutes=30))
        await index.add("u_1", "early", ms_in(minutes=5))
        await index.add("u_1", "middle", ms_in(minutes=10))

        assert await index.list_session_ids("u_1") == ["early", "middle", "late"]

    @pytest.mark.asyncio
    async def test_list_unknown_user_is_empty(self, index):
        assert await index.list_session_ids("nobody") == []

    @pytest.mark.asyncio
    async def test_remove(self, index, ms_in):
        await index.add("u_1", "s1", ms_in(minutes=10))
        await index.add("u_1", "s2", ms_in(minutes=20))

        await index.remove("u_1", "s1")

        assert await index.list_session_ids("u_1") == ["s2"]

    @pytest.mark.asyncio
    async def test_clear_deletes_key(self, index, fake_redis, ms_in):
        await index.add("u_1", "s1", ms_in(minutes=10))

        await index.clear("u_1")

        assert await fake_redis.exists(USER_KEY) == 0

    @pytest.mark.asyncio
    async def test_redis_failure_is_wrapped(self, index, fake_redis, ms_in):
        with patch.object(
            fake_redis, "zadd", AsyncMock(side_effect=RedisConnectionError("down"))
        ):
            with pytest.raises(SessionStoreError) as exc_info:
                await index.add("u_1", "s1", ms_in(minutes=10))

        assert exc_info.value.key == USER_KEY
        assert isinstance(exc_info.value.__cause__, RedisConnectionError)

    @pytest.mark.asyncio
    async def test_get_expiry_failure_is_wrapped(self, index, fake_redis):
        with patch.object(
            fake_redis,
            "pexpiretime",
            AsyncMock(side_effect=RedisConnectionError("down")),
        ):
            with pytest.raises(SessionStoreError) as exc_info:
                await index.get_expiry("u_1")

        assert exc_info.value.key == USER_KEY
        assert isinstance(exc_info.value.__cause__, RedisConnectionError)

    @pytest.mark.asyncio
    async def test_bytes_members_are_decoded(self, ms_in):
        import fakeredis
        import fakeredis.aioredis

        raw = fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer())
        try:
            bytes_index = UserSessionIndex(raw)
            await bytes_index.add("u_1", "s1", ms_in(minutes=10))

            assert await bytes_index.list_session_ids("u_1") == ["s1"]
        finally:
            await raw.aclose()


# =============================================================================
# TTL Resync
# =============================================================================


class TestResyncTtl:
    """Tests for resync_ttl()."""

    @pytest.mark.asyncio
    async def test_expiry_is_max_score(self, index, ms_in):
        shorter = ms_in(minutes=10)
        longer = ms_in(minutes=20)
        await index.add("u_1", "a", shorter)
        await index.add("u_1", "b", longer)

        applied = await index.resync_ttl("u_1")

        assert applied == longer
        assert await index.get_expiry("u_1") == longer

    @pytest.mark.asyncio
    async def test_shorter_member_never_shrinks_expiry(self, index, ms_in):
        longer = ms_in(minutes=20)
        await index.add("u_1", "b", longer)
        await index.resync_ttl("u_1")

        await index.add("u_1", "a", ms_in(minutes=5))
        await index.resync_ttl("u_1")

        assert await index.get_expiry("u_1") == longer

    @pytest.mark.asyncio
    async def test_empty_index_is_noop(self, index, fake_redis):
        assert await index.resync_ttl("u_1") is None
        assert await fake_redis.exists(USER_KEY) == 0

    @pytest.mark.asyncio
    async def test_resync_is_idempotent(self, index, ms_in):
        expires = ms_in(minutes=10)
        await index.add("u_1", "a", expires)

        await index.resync_ttl("u_1")
        await index.resync_ttl("u_1")

        assert await index.get_expiry("u_1") == expires

    @pytest.mark.asyncio
    async def test_get_expiry_without_ttl(self, index, ms_in):
        await index.add("u_1", "a", ms_in(minutes=10))

        assert await index.get_expiry("u_1") is None
        assert await index.get_expiry("nobody") is None

    @pytest.mark.asyncio
    async def test_schedule_resync_runs_in_background(self, index, ms_in):
        expires = ms_in(minutes=10)
        await index.add("u_1", "a", expires)

        index.schedule_resync("u_1")
        assert index.background.pending == 1
        await index.background.wait()

        assert await index.get_expiry("u_1") == expires


# =============================================================================
# Lazy Prune
# =============================================================================


class TestPruneExpired:
    """Tests for prune_expired()."""

    @pytest.mark.asyncio
    async def test_removes_only_past_scores(self, index, ms_in):
        await index.add("u_1", "stale", ms_in(minutes=-1))
        await index.add("u_1", "live", ms_in(minutes=10))

        removed = await index.prune_expired("u_1")

        assert removed == 1
        assert await index.list_session_ids("u_1") == ["live"]

    @pytest.mark.asyncio
    async def test_score_equal_to_now_is_pruned(self, index):
        await index.add("u_1", "edge", 1_000)

        assert await index.prune_expired("u_1", now=1_000) == 1

    @pytest.mark.asyncio
    async def test_noop_when_nothing_is_stale(self, index, ms_in):
        await index.add("u_1", "live", ms_in(minutes=10))

        assert await index.prune_expired("u_1") == 0
        assert await index.prune_expired("u_1") == 0
        assert await index.list_session_ids("u_1") == ["live"]

    @pytest.mark.asyncio
    async def test_schedule_prune_runs_in_background(self, index, ms_in):
        await index.add("u_1", "stale", ms_in(minutes=-1))

        index.schedule_prune("u_1")
        await index.background.wait()

        assert await index.list_session_ids("u_1") == []
