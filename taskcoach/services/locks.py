"""Named mutual-exclusion locks in Redis with a time-to-live."""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

import redis

from taskcoach.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# Delete the key only if it still holds our token
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

_lock_redis: redis.Redis | None = None


def get_lock_redis() -> redis.Redis:
    """Get the Redis client used for locks."""
    global _lock_redis
    if _lock_redis is None:
        _lock_redis = redis.from_url(settings.redis_url)
    return _lock_redis


def lock_key(name: str) -> str:
    return f"{settings.environment}:lock:{name}"


@contextmanager
def redis_lock(name: str, ttl: int) -> Iterator[bool]:
    """Try to hold the lock ``name`` for at most ``ttl`` seconds.

    Yields True when the lock was acquired and False when another holder has
    it or Redis is unreachable; callers skip their work on False. The lock is
    released on exit and otherwise expires after ``ttl``.
    """
    key = lock_key(name)
    token = uuid.uuid4().hex

    try:
        client = get_lock_redis()
        acquired = bool(client.set(key, token, nx=True, ex=ttl))
    except redis.RedisError as e:
        logger.error(f"Could not acquire lock {key}: {e}")
        yield False
        return

    if not acquired:
        logger.warning(f"Lock {key} is held elsewhere, skipping")
        yield False
        return

    try:
        yield True
    finally:
        try:
            client.eval(RELEASE_SCRIPT, 1, key, token)
        except redis.RedisError as e:
            # Expires on its own after ttl
            logger.error(f"Failed to release lock {key}: {e}")
