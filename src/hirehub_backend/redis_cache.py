"""
Redis client factory.

Provides the synchronous Redis client used by the shared room
authorization store when ROOM_STORE_BACKEND=redis.
"""

import os
from typing import Optional

import redis

_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """
    Get the process-wide Redis client, creating it on first use.

    Returns:
        Redis client instance (responses decoded to str)

    Example:
        >>> client = get_redis_client()
        >>> client.sadd("ws:room_auth:session_1", "user_abc")
    """
    global _redis_client

    if _redis_client is None:
        redis_password = os.environ.get('REDIS_PASSWORD', '')
        _redis_client = redis.Redis(
            host=os.environ.get('REDIS_HOST', 'localhost'),
            port=int(os.environ.get('REDIS_PORT', '6379')),
            password=redis_password if redis_password else None,
            db=int(os.environ.get('REDIS_DB', '0')),
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )

    return _redis_client
