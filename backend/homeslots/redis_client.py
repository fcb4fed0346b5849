# backend/homeslots/redis_client.py
"""
Optional Redis connection.

Redis backs the level-1 segments cache and the booking event queues.
An empty REDIS_URL disables both: slots are computed on the fly and
events are dropped with a debug log.
"""

from functools import lru_cache

from redis import Redis

from .config import settings


@lru_cache
def _connect(url: str) -> Redis:
    return Redis.from_url(url, socket_timeout=2.0, decode_responses=True)


def get_redis() -> Redis | None:
    """Shared client, or None when Redis is not configured."""
    if not settings.redis_url:
        return None
    return _connect(settings.redis_url)
