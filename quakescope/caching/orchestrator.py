"""
Cache-aside wrapper for expensive computations.

Flow for :meth:`CacheAsideOrchestrator.fetch`:
1. Look the key up in the ephemeral cache (read failures count as a miss)
2. On a hit, return the stored body unchanged
3. On a miss, run the computation synchronously and return its result
4. Hand the serialized result to a background writer; the caller never waits
   on, or sees the outcome of, the cache write

Concurrent misses for the same key each run the computation. There is no
single-flight table.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Set

from ..errors import CacheError
from .store import KeyValueCache


logger = logging.getLogger(__name__)


# -----------------------------
# Cache keys
# -----------------------------

def _number_key(value: float) -> str:
    # repr round-trips every float exactly; 100 and 100.0 share a key.
    return repr(float(value))


def fault_context_cache_key(event_id: str, radius_km: float, limit: int) -> str:
    return f"fault_context_{event_id}_r{_number_key(radius_km)}_l{limit}"


def member_fingerprint(event_ids: Iterable[str]) -> str:
    """Short digest of an ordered id list."""

    blob = json.dumps(list(event_ids))
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()[:16]


def cluster_cache_key(event_ids: Iterable[str], max_distance_km: float, min_quakes: int) -> str:
    """
    Key for a clustering request.

    Batch size and both parameters are part of the key; the member
    fingerprint keeps two different batches of the same size apart.
    """
    ids = list(event_ids)
    return f"clusters-{len(ids)}-{_number_key(max_distance_km)}-{min_quakes}-{member_fingerprint(ids)}"


# -----------------------------
# Background writes
# -----------------------------

class BackgroundWriter:
    """
    Runs cache writes on a small thread pool, detached from the request.

    Failures are logged from a done-callback. :meth:`wait_for_pending` exists
    so tests and shutdown can observe completion.
    """

    def __init__(self, max_workers: int = 2):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="cache-writeback")
        self._pending: Set[Future] = set()
        self._idle = threading.Condition()

    def submit(self, description: str, fn: Callable[..., Any], *args: Any) -> Optional[Future]:
        with self._idle:
            try:
                future = self._executor.submit(fn, *args)
            except RuntimeError as exc:
                # Executor already shut down.
                logger.warning("Could not schedule %s: %s", description, exc)
                return None
            self._pending.add(future)
        future.add_done_callback(lambda f: self._on_done(description, f))
        return future

    def _on_done(self, description: str, future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.warning("Background %s failed: %s", description, exc)
        else:
            logger.debug("Background %s completed", description)
        with self._idle:
            self._pending.discard(future)
            self._idle.notify_all()

    def wait_for_pending(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every scheduled job has finished and been logged.
        Returns ``False`` on timeout.
        """
        with self._idle:
            return self._idle.wait_for(lambda: not self._pending, timeout=timeout)

    def shutdown(self, wait_for_writes: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_writes)


# -----------------------------
# Orchestrator
# -----------------------------

@dataclass(frozen=True)
class CacheResult:
    """A payload plus whether it came from the cache."""

    body: str
    """Serialized JSON, byte-identical between the miss and later hits."""

    cache_hit: bool

    @property
    def payload(self) -> Any:
        return json.loads(self.body)


class CacheAsideOrchestrator:
    """Check cache, compute on miss, write back without blocking."""

    def __init__(self, cache: KeyValueCache, writer: BackgroundWriter):
        self.cache = cache
        self.writer = writer

    def _read(self, key: str) -> Optional[str]:
        try:
            cached = self.cache.get(key)
        except CacheError as exc:
            logger.warning("Cache read failed for %s, computing: %s", key, exc.__cause__ or exc)
            return None
        if cached is None:
            return None
        try:
            json.loads(cached)
        except ValueError:
            logger.warning("Discarding unreadable cache entry %s", key)
            return None
        return cached

    def _write(self, key: str, body: str, ttl_seconds: float) -> None:
        self.cache.put(key, body, ttl_seconds)
        logger.debug("Cached %s for %ss", key, ttl_seconds)

    def fetch(self, key: str, compute: Callable[[], Any], ttl_seconds: float) -> CacheResult:
        """
        Return the cached payload for ``key`` or compute and schedule a write.

        Args:
            key: Deterministic cache key
            compute: Zero-argument callable producing a JSON-serializable payload
            ttl_seconds: Lifetime of the written entry

        Returns:
            CacheResult with the serialized body and hit flag

        Raises:
            Whatever ``compute`` raises; cache failures never propagate
        """
        cached = self._read(key)
        if cached is not None:
            logger.info("Cache HIT %s", key)
            return CacheResult(body=cached, cache_hit=True)

        logger.info("Cache MISS %s", key)
        body = json.dumps(compute())
        self.writer.submit(f"cache write {key}", self._write, key, body, ttl_seconds)
        return CacheResult(body=body, cache_hit=False)
