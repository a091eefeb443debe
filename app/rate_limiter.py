"""
Hybrid in-memory + Redis rate limiting for realtime socket events
In-memory counting always; Redis mirrors counters when REDIS_URL is configured
"""

import logging
import time
from threading import Lock
from typing import Optional

import redis

from .config import REDIS_URL, WS_EVENT_RATE_LIMIT, WS_EVENT_RATE_WINDOW

logger = logging.getLogger(__name__)

# Redis connection
redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """Get or create the Redis client from REDIS_URL"""
    global redis_client

    if redis_client is None:
        if not REDIS_URL:
            raise RuntimeError("REDIS_URL is not configured")

        # Mask password in URL for logging
        if "@" in REDIS_URL:
            url_parts = REDIS_URL.split("@")
            protocol = url_parts[0].split(":")[0]
            masked_url = f"{protocol}:****@{url_parts[1]}"
        else:
            masked_url = "****"
        logger.info(f"📡 Using Redis URL connection: {masked_url}")

        redis_client = redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
            max_connections=20,
        )
    return redis_client


class EventRateLimiter:
    """Fixed-window counter per key; fail-open when Redis misbehaves"""

    def __init__(
        self,
        limit: int = WS_EVENT_RATE_LIMIT,
        window_seconds: int = WS_EVENT_RATE_WINDOW,
        use_redis: bool = bool(REDIS_URL),
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.use_redis = use_redis
        # Format: {key: {'count': int, 'reset_time': float}}
        self._memory: dict[str, dict] = {}
        self._lock = Lock()

    def allow(self, key: str) -> bool:
        """Count one event for ``key`` and report whether it is within the limit"""
        now = time.time()
        with self._lock:
            entry = self._memory.get(key)
            if entry is None or entry["reset_time"] <= now:
                entry = {"count": 0, "reset_time": now + self.window_seconds}
                self._memory[key] = entry
            entry["count"] += 1
            count = entry["count"]

        if self.use_redis:
            redis_count = self._incr_redis(key)
            if redis_count is not None:
                count = max(count, redis_count)

        if count > self.limit:
            logger.warning(f"⚠️ Rate limit exceeded for {key}: {count}/{self.limit}")
            return False
        return True

    def _incr_redis(self, key: str) -> Optional[int]:
        try:
            client = get_redis_client()
            pipe = client.pipeline()
            pipe.incr(f"ratelimit:{key}")
            pipe.expire(f"ratelimit:{key}", self.window_seconds, nx=True)
            count, _ = pipe.execute()
            return int(count)
        except Exception as e:
            logger.error(f"❌ Redis rate limit error for {key} (fail-open): {e}")
            return None

    def cleanup_expired(self) -> int:
        """Remove expired entries from memory; returns how many were dropped"""
        now = time.time()
        with self._lock:
            expired = [key for key, entry in self._memory.items() if entry["reset_time"] <= now]
            for key in expired:
                del self._memory[key]
        return len(expired)
