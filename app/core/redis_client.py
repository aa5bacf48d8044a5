"""
Redis client for the usage counter and pending-batch snapshots.
"""
import logging
from typing import Optional

import redis

from app.core.config import settings

logger = logging.getLogger(__name__)

# Redis client (lazy initialization)
_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client.

    Connection errors surface on first command rather than here, so the
    API can start while Redis is still coming up.

    Returns:
        redis.Redis: Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        logger.info("Redis client created for %s", settings.REDIS_URL.split("@")[-1])

    return _redis_client


def check_redis_connection(client: Optional[redis.Redis] = None) -> bool:
    try:
        return bool((client or get_redis_client()).ping())
    except redis.RedisError as e:
        logger.error(f"Redis ping failed: {e}")
        return False
