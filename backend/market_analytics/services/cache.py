"""In-memory TTL cache for security metadata lookups."""

import time
import threading
from typing import Any

from market_analytics.config import SECURITY_CACHE_TTL


class CacheService:
    """Thread-safe in-memory cache with TTL support.

    Keys are namespaced with ``prefix`` so several lookups can share one cache.
    """

    def __init__(self, default_ttl: int = 60, prefix: str = ""):
        self._store: dict[str, tuple[Any, float]] = {}
        self._default_ttl = default_ttl
        self._prefix = prefix
        self._lock = threading.Lock()

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _get_locked(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if time.time() > expires_at:
            del self._store[key]
            return None
        return value

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._get_locked(self._key(key))

    def get_many(self, keys: list[str]) -> dict[str, Any]:
        """Cached values for ``keys``; misses and expired entries are omitted."""
        found = {}
        with self._lock:
            for key in keys:
                value = self._get_locked(self._key(key))
                if value is not None:
                    found[key] = value
        return found

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        ttl = ttl if ttl is not None else self._default_ttl
        expires_at = time.time() + ttl
        with self._lock:
            self._store[self._key(key)] = (value, expires_at)

    def set_many(self, items: dict[str, Any], ttl: int | None = None) -> None:
        ttl = ttl if ttl is not None else self._default_ttl
        expires_at = time.time() + ttl
        with self._lock:
            for key, value in items.items():
                self._store[self._key(key)] = (value, expires_at)


# Global cache instance
security_cache = CacheService(default_ttl=SECURITY_CACHE_TTL, prefix="security:")
