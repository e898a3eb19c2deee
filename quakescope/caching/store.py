"""
Ephemeral key-value cache with a time-to-live per entry.

Values are opaque strings (serialized payloads). Entries expire on their own
TTL, and the least recently used entries are evicted once ``maxsize`` is
reached.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

from cachetools import TLRUCache

from ..errors import CacheError


logger = logging.getLogger(__name__)


class KeyValueCache(ABC):
    """get / put-with-ttl contract consumed by the cache-aside orchestrator."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Raises:
            CacheError: If the cache cannot be read
        """

    @abstractmethod
    def put(self, key: str, value: str, ttl_seconds: float) -> None:
        """
        Raises:
            CacheError: If the cache cannot be written
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """
        Remove ``key`` if present.

        Raises:
            CacheError: If the cache cannot be written
        """


def _expires_at(_key: str, entry: Tuple[str, float], now: float) -> float:
    return now + entry[1]


class TTLKeyValueCache(KeyValueCache):
    """
    In-process cache backed by ``cachetools.TLRUCache``.

    cachetools containers are not thread-safe, and writes arrive from the
    background writer's threads, so every access holds a lock.
    """

    def __init__(self, maxsize: int = 4096, timer: Callable[[], float] = time.monotonic):
        self._cache: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_expires_at, timer=timer)
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        try:
            with self._lock:
                entry = self._cache.get(key)
        except Exception as exc:
            raise CacheError(f"Cache read failed for {key!r}") from exc
        return entry[0] if entry is not None else None

    def put(self, key: str, value: str, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            raise CacheError(f"TTL must be positive, got {ttl_seconds}")
        try:
            with self._lock:
                self._cache[key] = (value, float(ttl_seconds))
        except Exception as exc:
            raise CacheError(f"Cache write failed for {key!r}") from exc

    def delete(self, key: str) -> None:
        try:
            with self._lock:
                self._cache.pop(key, None)
        except Exception as exc:
            raise CacheError(f"Cache delete failed for {key!r}") from exc

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            self._cache.expire()
            return {"size": len(self._cache), "maxsize": self._cache.maxsize}
