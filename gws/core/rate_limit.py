import logging
from typing import Optional

from fastapi import Request
import redis
import redis.exceptions

logger = logging.getLogger(__name__)


def build_redis_client(redis_url: Optional[str]):
    if not redis_url:
        return None
    return redis.Redis.from_url(
        redis_url,
        decode_responses=True,
        socket_connect_timeout=2,
        socket_keepalive=True,
        retry_on_timeout=True,
    )


def get_client_ip(request: Request) -> str:
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def is_rate_limited_path(path: str) -> bool:
    return path.startswith("/api/")


class RateLimiter:
    """Fixed-window request counter kept in Redis. Fails open."""

    def __init__(self, redis_client, limit: int = 100, window: int = 60):
        self.redis_client = redis_client
        self.limit = limit
        self.window = window

    def check(self, key: str) -> Optional[bool]:
        """True if allowed, False if over the limit, None if Redis is unavailable."""
        if self.redis_client is None:
            return None
        try:
            current = self.redis_client.get(key)
            if current and int(current) >= self.limit:
                return False

            pipe = self.redis_client.pipeline()
            pipe.incr(key, 1)
            if not current:
                pipe.expire(key, self.window)
            pipe.execute()
            return True
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError):
            logger.warning("Redis connection failed. Rate limiting skipped (fail open).")
            return None
        except ValueError:
            logger.warning(f"Unparseable rate limit counter at {key}; skipping")
            return None
