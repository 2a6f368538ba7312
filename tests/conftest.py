"""
Pytest configuration for the redis-user-sessions test suite.

This configuration sets up:
- Test discovery paths
- Shared fixtures following the FakeRepository pattern (fakeredis)
- Timestamp helpers for building `expires` values
- Test markers for categorization
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import fakeredis
import fakeredis.aioredis
import pytest
import pytest_asyncio

# Add project root to Python path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


# =============================================================================
# Test Markers
# =============================================================================


def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests for session flows")


# =============================================================================
# Timestamp Helpers
# =============================================================================


def _iso_in(**delta: float) -> str:
    moment = datetime.now(timezone.utc) + timedelta(**delta)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _ms_in(**delta: float) -> int:
    moment = datetime.now(timezone.utc) + timedelta(**delta)
    return int(moment.timestamp() * 1000)


@pytest.fixture
def iso_in():
    """
    Build an ISO-8601 `expires` string relative to now.

    Example:
        >>> iso_in(minutes=10)
        '2026-10-19T12:10:00.000Z'
    """
    return _iso_in


@pytest.fixture
def ms_in():
    """Build epoch milliseconds relative to now (negative deltas for the past)."""
    return _ms_in


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Ensure every test sees a fresh Settings singleton."""
    from redis_user_sessions.core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings():
    """Settings with safe test defaults."""
    from redis_user_sessions.core.config import Settings

    return Settings(
        redis_url="redis://localhost:6379",
        redis_pool_size=5,
        session_id_bytes=24,
        log_level="DEBUG",
        log_json=True,
    )


# =============================================================================
# FakeRedis
# =============================================================================


@pytest_asyncio.fixture
async def fake_redis():
    """
    Provide a fake Redis client backed by its own in-memory server.

    Pattern: FakeRepository - test doubles without complex mocking
    Reference: Percival & Gregory pp. 157
    """
    redis = fakeredis.aioredis.FakeRedis(
        server=fakeredis.FakeServer(), decode_responses=True
    )
    yield redis
    await redis.aclose()


@pytest_asyncio.fixture
async def session_manager(fake_redis):
    """Provide a SessionManager over fake Redis, draining background work on teardown."""
    from redis_user_sessions.sessions.manager import SessionManager

    manager = SessionManager(fake_redis, session_id_bytes=24)
    yield manager
    await manager.wait_for_background_tasks()
    await manager.aclose()


@pytest.fixture
def session_store(session_manager):
    """The SessionStore wired into session_manager."""
    return session_manager.store


@pytest.fixture
def user_index(session_manager):
    """The UserSessionIndex wired into session_manager."""
    return session_manager.index
