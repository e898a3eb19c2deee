"""
Unit Tests for the cache layer (quakescope/caching)

Tests per-entry TTL expiry, deterministic keys, cache-aside hit/miss
behaviour, and that write-back never blocks or fails the caller.
"""

import json
import logging
import threading

import pytest

from quakescope.caching import (
    BackgroundWriter,
    CacheAsideOrchestrator,
    KeyValueCache,
    TTLKeyValueCache,
    cluster_cache_key,
    fault_context_cache_key,
)
from quakescope.errors import CacheError, NotFoundError


class BrokenCache(KeyValueCache):
    """Every read and write fails."""

    def get(self, key):
        raise CacheError("read failed")

    def put(self, key, value, ttl_seconds):
        raise CacheError("write failed")

    def delete(self, key):
        raise CacheError("delete failed")


class BlockingCache(TTLKeyValueCache):
    """Writes wait until the test releases them."""

    def __init__(self):
        super().__init__()
        self.release = threading.Event()
        self.write_started = threading.Event()

    def put(self, key, value, ttl_seconds):
        self.write_started.set()
        assert self.release.wait(timeout=5)
        super().put(key, value, ttl_seconds)


# ==============================================================================
# Key-value store
# ==============================================================================

class TestTTLKeyValueCache:
    """Test the cachetools-backed store."""

    def test_put_then_get(self, cache):
        cache.put("k", "v", 60)
        assert cache.get("k") == "v"

    def test_missing_key(self, cache):
        assert cache.get("nope") is None

    def test_entry_expires_after_its_own_ttl(self, cache, clock):
        cache.put("short", "a", 10)
        cache.put("long", "b", 100)
        clock.advance(11)
        assert cache.get("short") is None
        assert cache.get("long") == "b"
        clock.advance(100)
        assert cache.get("long") is None

    def test_non_positive_ttl_rejected(self, cache):
        with pytest.raises(CacheError):
            cache.put("k", "v", 0)

    def test_lru_eviction(self, clock):
        small = TTLKeyValueCache(maxsize=2, timer=clock)
        small.put("a", "1", 60)
        small.put("b", "2", 60)
        small.put("c", "3", 60)
        assert small.stats()["size"] == 2
        assert small.get("c") == "3"

    def test_delete(self, cache):
        cache.put("k", "v", 60)
        cache.delete("k")
        cache.delete("never-there")
        assert cache.get("k") is None

    def test_clear(self, cache):
        cache.put("k", "v", 60)
        cache.clear()
        assert cache.get("k") is None


# ==============================================================================
# Keys
# ==============================================================================

class TestCacheKeys:
    """Test deterministic key derivation."""

    def test_fault_context_key(self):
        assert fault_context_cache_key("ci123", 100.0, 5) == "fault_context_ci123_r100.0_l5"
        assert fault_context_cache_key("ci123", 50.5, 10) == "fault_context_ci123_r50.5_l10"

    def test_integer_and_float_radius_share_a_key(self):
        assert fault_context_cache_key("ci123", 100, 5) == fault_context_cache_key("ci123", 100.0, 5)
        assert cluster_cache_key(["a"], 25, 2) == cluster_cache_key(["a"], 25.0, 2)

    @pytest.mark.parametrize("low,high", [(1234561.0, 1234564.0), (12345.61, 12345.63), (0.1, 0.1000001)])
    def test_near_equal_parameters_get_distinct_keys(self, low, high):
        assert fault_context_cache_key("ev1", low, 5) != fault_context_cache_key("ev1", high, 5)
        assert cluster_cache_key(["a", "b"], low, 2) != cluster_cache_key(["a", "b"], high, 2)

    def test_cluster_key_includes_count_and_parameters(self):
        key = cluster_cache_key(["a", "b", "c"], 100.0, 3)
        assert key.startswith("clusters-3-100.0-3-")

    def test_cluster_key_is_deterministic(self):
        assert cluster_cache_key(["a", "b"], 10, 2) == cluster_cache_key(["a", "b"], 10, 2)

    def test_same_size_batches_do_not_collide(self):
        assert cluster_cache_key(["a", "b"], 10, 2) != cluster_cache_key(["x", "y"], 10, 2)

    def test_parameters_change_key(self):
        assert cluster_cache_key(["a", "b"], 10, 2) != cluster_cache_key(["a", "b"], 20, 2)
        assert cluster_cache_key(["a", "b"], 10, 2) != cluster_cache_key(["a", "b"], 10, 3)


# ==============================================================================
# Cache-aside
# ==============================================================================

class TestCacheAsideOrchestrator:
    """Test hit/miss flow and background write-back."""

    def test_miss_then_hit_is_byte_identical(self, orchestrator, writer):
        calls = []

        def compute():
            calls.append(1)
            return {"value": 42, "items": [1.5, "x", None]}

        first = orchestrator.fetch("key", compute, 60)
        assert writer.wait_for_pending(timeout=5)
        second = orchestrator.fetch("key", compute, 60)

        assert first.cache_hit is False
        assert second.cache_hit is True
        assert first.body == second.body
        assert second.payload == {"value": 42, "items": [1.5, "x", None]}
        assert len(calls) == 1

    def test_entry_expires_with_ttl(self, orchestrator, writer, clock):
        orchestrator.fetch("key", lambda: {"n": 1}, 30)
        assert writer.wait_for_pending(timeout=5)
        clock.advance(31)
        assert orchestrator.fetch("key", lambda: {"n": 2}, 30).payload == {"n": 2}

    def test_write_back_does_not_block_caller(self):
        cache = BlockingCache()
        writer = BackgroundWriter(max_workers=1)
        try:
            orchestrator = CacheAsideOrchestrator(cache, writer)
            result = orchestrator.fetch("key", lambda: {"ok": True}, 60)

            # The response is back while the write is still parked.
            assert result.payload == {"ok": True}
            assert cache.write_started.wait(timeout=5)
            assert cache.get("key") is None

            cache.release.set()
            assert writer.wait_for_pending(timeout=5)
            assert cache.get("key") == result.body
        finally:
            cache.release.set()
            writer.shutdown()

    def test_cache_failures_fall_through(self, writer, caplog):
        orchestrator = CacheAsideOrchestrator(BrokenCache(), writer)
        with caplog.at_level(logging.WARNING):
            result = orchestrator.fetch("key", lambda: [1, 2, 3], 60)
            assert writer.wait_for_pending(timeout=5)

        assert result.payload == [1, 2, 3]
        assert result.cache_hit is False
        assert "Cache read failed" in caplog.text
        assert "Background cache write key failed" in caplog.text

    def test_unreadable_entry_is_recomputed(self, orchestrator, cache):
        cache.put("key", "{not json", 60)
        result = orchestrator.fetch("key", lambda: {"fresh": True}, 60)
        assert result.cache_hit is False
        assert result.payload == {"fresh": True}

    def test_computation_errors_propagate_and_are_not_cached(self, orchestrator, writer, cache):
        def compute():
            raise NotFoundError("missing")

        with pytest.raises(NotFoundError):
            orchestrator.fetch("key", compute, 60)
        assert writer.wait_for_pending(timeout=5)
        assert cache.get("key") is None

    def test_concurrent_misses_each_compute(self, orchestrator):
        """No single-flight: two misses before any write both compute."""
        calls = []
        orchestrator.writer.shutdown()

        first = orchestrator.fetch("key", lambda: calls.append(1) or {"n": len(calls)}, 60)
        second = orchestrator.fetch("key", lambda: calls.append(1) or {"n": len(calls)}, 60)

        assert len(calls) == 2
        assert first.cache_hit is False and second.cache_hit is False
        assert json.loads(second.body) == {"n": 2}
