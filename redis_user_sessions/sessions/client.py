"""
Redis client factory.

The session layer never manages connection lifecycle for clients handed to
it; this factory exists for callers that want a client built from Settings.
"""

from typing import Optional

import redis.asyncio as redis
from redis.asyncio import Redis

from redis_user_sessions.core.config import Settings, get_settings


def create_redis_client(settings: Optional[Settings] = None) -> Redis:
    """
    Create an async Redis client with a bounded connection pool.

    Responses are decoded to str so sorted-set members come back as
    session ids rather than bytes.

    Args:
        settings: Settings to read redis_url and redis_pool_size from.
                  Defaults to get_settings().

    Returns:
        Configured redis.asyncio.Redis client.
    """
    settings = settings or get_settings()
    return redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_pool_size,
        decode_responses=True,
    )
