"""In-process TTL cache for match responses.

Entries are keyed by ``compute_profile_key`` (a SHA-256 of the echoed
profile plus requested categories). A TTL of 0 disables the cache. When full,
the oldest entry is evicted.
"""

import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional, Tuple


class ResponseCache:
    """Thread-safe TTL cache with hit/miss accounting."""

    def __init__(
        self,
        ttl_seconds: int = 300,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if absent, expired or disabled."""
        if not self.enabled:
            return None

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                created_at, value = entry
                if self._clock() - created_at < self.ttl_seconds:
                    self._hits += 1
                    return value
                del self._entries[key]
            self._misses += 1
            return None

    def set(self, key: str, value: Any) -> None:
        if not self.enabled:
            return

        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (self._clock(), value)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            return {
                "enabled": self.enabled,
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
                "ttl_seconds": self.ttl_seconds,
            }
