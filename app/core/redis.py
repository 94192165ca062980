"""
Optional redis cache for flight lookups.

Every helper degrades to a no-op when REDIS_URL is unset or the server cannot
be reached, so flight search keeps working without a cache.
"""
import json

import redis
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.logging_config import get_logger

logger = get_logger("flight")

_client = None
_unavailable = False


def get_redis_client():
    global _client, _unavailable

    if _client is not None or _unavailable or not settings.REDIS_URL:
        return _client

    try:
        client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        client.ping()
    except RedisError as e:
        # Not retried per lookup; a restart picks redis up again
        _unavailable = True
        logger.warning(f"Redis unavailable, flight cache disabled: {e}")
        return None

    logger.info("Redis connected")
    _client = client
    return _client


def get_cache(key: str):
    client = get_redis_client()
    if client is None:
        return None

    try:
        raw = client.get(key)
    except RedisError as e:
        logger.warning(f"Redis read failed | {key} | {e}")
        return None
    return json.loads(raw) if raw else None


def set_cache(key: str, value, ttl: int):
    client = get_redis_client()
    if client is None:
        return

    try:
        client.setex(key, ttl, json.dumps(value, default=str))
    except RedisError as e:
        logger.warning(f"Redis write failed | {key} | {e}")
