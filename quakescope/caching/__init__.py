"""Ephemeral cache and the cache-aside orchestrator."""

from .orchestrator import (
    BackgroundWriter,
    CacheAsideOrchestrator,
    CacheResult,
    cluster_cache_key,
    fault_context_cache_key,
    member_fingerprint,
)
from .store import KeyValueCache, TTLKeyValueCache

__all__ = [
    "BackgroundWriter",
    "CacheAsideOrchestrator",
    "CacheResult",
    "KeyValueCache",
    "TTLKeyValueCache",
    "cluster_cache_key",
    "fault_context_cache_key",
    "member_fingerprint",
]
