import os
import logging
import redis

logger = logging.getLogger(__name__)

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

_client: redis.Redis | None = None


def init_cache() -> redis.Redis:
    """Open the process-wide Redis client. Safe to call more than once."""
    global _client
    if _client is None:
        _client = redis.Redis.from_url(REDIS_URL, decode_responses=True)
        try:
            _client.ping()
            logger.info("Connected to Redis")
        except redis.RedisError as e:
            # Requests that need the cache fail on their own; the rest of the API stays up.
            logger.error("Redis unreachable at startup | error=%s", str(e))
    return _client


def close_cache():
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info("Redis connection closed")


def get_redis() -> redis.Redis:
    return init_cache()
