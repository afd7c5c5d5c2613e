from typing import Any
import redis
from cachetools import TTLCache
from .config import settings

class Cache:
    """
    Short-lived key/value cache for request-path bookkeeping (rate-limit
    counters, verified API keys). Redis when USE_REDIS is set so limits hold
    across workers, otherwise an in-process TTLCache.

    Provider payloads do NOT live here; they go to the persistent
    property cache (see data/cache_store.py).
    """
    def __init__(self, use_redis: bool = settings.USE_REDIS, ttl_seconds: int = settings.CACHE_TTL_SECONDS):
        self.ttl_seconds = ttl_seconds
        self.backend = None
        self._local = TTLCache(maxsize=4096, ttl=ttl_seconds)
        if use_redis:
            self.backend = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)

    def get(self, key: str) -> Any | None:
        if self.backend:
            return self.backend.get(key)
        return self._local.get(key)

    def set(self, key: str, value: str) -> None:
        if self.backend:
            self.backend.setex(key, self.ttl_seconds, value)
        else:
            self._local[key] = value

    def incr(self, key: str) -> int:
        """Add one to a counter and return the new value. The TTL starts at the first hit."""
        if self.backend:
            count = self.backend.incr(key)
            if count == 1:
                self.backend.expire(key, self.ttl_seconds)
            return int(count)
        count = int(self._local.get(key, 0)) + 1
        self._local[key] = count
        return count

cache = Cache()
