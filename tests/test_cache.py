"""Tests for the response cache."""

import threading

from resource_matcher.api.cache import ResponseCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestResponseCache:
    """TTL cache behaviour."""

    def test_set_and_get(self):
        cache = ResponseCache(ttl_seconds=60)
        cache.set("k", {"success": True})
        assert cache.get("k") == {"success": True}

    def test_miss(self):
        cache = ResponseCache(ttl_seconds=60)
        assert cache.get("absent") is None
        assert cache.stats()["misses"] == 1

    def test_expiry(self):
        """Entries expire once their TTL has elapsed."""
        clock = FakeClock()
        cache = ResponseCache(ttl_seconds=60, clock=clock)
        cache.set("k", "v")

        clock.now += 59
        assert cache.get("k") == "v"

        clock.now += 1
        assert cache.get("k") is None
        assert cache.stats()["size"] == 0

    def test_disabled_when_ttl_zero(self):
        """A zero TTL turns the cache off entirely."""
        cache = ResponseCache(ttl_seconds=0)
        cache.set("k", "v")

        assert not cache.enabled
        assert cache.get("k") is None
        assert cache.stats()["misses"] == 0

    def test_evicts_oldest_when_full(self):
        cache = ResponseCache(ttl_seconds=60, max_entries=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)

        assert cache.get("a") is None
        assert cache.get("b") == 2
        assert cache.get("c") == 3

    def test_overwrite_refreshes_position(self):
        cache = ResponseCache(ttl_seconds=60, max_entries=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)
        cache.set("c", 3)

        assert cache.get("a") == 10
        assert cache.get("b") is None

    def test_stats(self):
        cache = ResponseCache(ttl_seconds=300)
        cache.set("k", "v")
        cache.get("k")
        cache.get("k")
        cache.get("other")

        assert cache.stats() == {
            "enabled": True,
            "size": 1,
            "hits": 2,
            "misses": 1,
            "hit_rate": 66.7,
            "ttl_seconds": 300,
        }

    def test_clear(self):
        cache = ResponseCache(ttl_seconds=60)
        cache.set("k", "v")
        cache.get("k")
        cache.clear()

        assert cache.stats()["size"] == 0
        assert cache.stats()["hits"] == 0

    def test_concurrent_access(self):
        """Parallel writers and readers leave the cache consistent."""
        cache = ResponseCache(ttl_seconds=60, max_entries=50)

        def worker(n):
            for i in range(100):
                cache.set(f"{n}-{i}", i)
                cache.get(f"{n}-{i}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        stats = cache.stats()
        assert stats["size"] <= 50
        assert stats["hits"] + stats["misses"] == 800
