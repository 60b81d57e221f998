"""
Database Module - Redis Client

Provides a singleton async Upstash Redis client for the redis storage backend.
"""

from typing import Optional

from upstash_redis.asyncio import Redis as AsyncRedis

from vaxdog.config import get_redis_credentials

# Singleton instance
_redis_client: Optional[AsyncRedis] = None


def get_redis() -> AsyncRedis:
    """
    Get async Upstash Redis client (singleton).

    Uses standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN

    Raises:
        ValueError: If credentials are not configured
    """
    global _redis_client

    if _redis_client is None:
        url, token = get_redis_credentials()
        _redis_client = AsyncRedis(url=url, token=token)

    return _redis_client
