"""Redis client for request rate limiting"""
import redis
import logging
from app.core.config import settings

logger = logging.getLogger(__name__)

# Lazy initialization - no connection at import time
_client = None


def get_redis_client():
    """Get or create Redis client (lazy initialization)

    This prevents connection attempts during import, allowing mocks to be applied first.
    """
    global _client
    if _client is None:
        _client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _client


def increment_rate_limit(identifier: str, window: int) -> int:
    """Increment rate limit counter and return current count.

    Fixed window: the key is created with its TTL on the first hit of a window,
    INCR keeps the existing TTL for the rest of it.
    """
    key = f"ratelimit:{identifier}"
    client = get_redis_client()
    client.set(key, 0, ex=window, nx=True)
    return int(client.incr(key))


def check_rate_limit(identifier: str, strict: bool = False) -> bool:
    """Check if request is within rate limit using Redis. Returns True if allowed, False if rate limited."""
    max_requests = settings.RATE_LIMIT_STRICT_REQUESTS if strict else settings.RATE_LIMIT_REQUESTS

    # Strict and relaxed counters are tracked separately
    bucket = f"strict:{identifier}" if strict else identifier
    current_count = increment_rate_limit(bucket, settings.RATE_LIMIT_WINDOW)

    return current_count <= max_requests
