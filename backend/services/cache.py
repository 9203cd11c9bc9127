"""
Simple in-memory cache with TTL

Used for Google's signing keys (JWKS), which change rarely and are needed
on every login.
"""
import asyncio
import time
from threading import Lock
from typing import Any, Awaitable, Callable, Dict, Optional


class SimpleCache:
    """Thread-safe in-memory cache with TTL"""

    def __init__(self, default_ttl: int = 300):
        self.cache: Dict[str, tuple[Any, float]] = {}
        self.lock = Lock()
        self.default_ttl = default_ttl
        self._loading: Dict[str, asyncio.Lock] = {}

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired"""
        with self.lock:
            if key in self.cache:
                value, expiry = self.cache[key]
                if time.time() < expiry:
                    return value
                del self.cache[key]
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None):
        """Set value in cache with TTL (seconds)"""
        ttl = ttl or self.default_ttl
        with self.lock:
            self.cache[key] = (value, time.time() + ttl)

    def delete(self, key: str):
        with self.lock:
            self.cache.pop(key, None)

    def clear(self):
        with self.lock:
            self.cache.clear()

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        ttl: Optional[int] = None,
    ) -> Any:
        """
        Cached value, or the result of awaiting loader() stored under key.

        Concurrent misses for the same key share one load.
        """
        value = self.get(key)
        if value is not None:
            return value

        lock = self._loading.setdefault(key, asyncio.Lock())
        async with lock:
            value = self.get(key)
            if value is None:
                value = await loader()
                self.set(key, value, ttl)
        return value
