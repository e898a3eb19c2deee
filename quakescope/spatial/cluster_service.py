"""Cluster computation over GeoJSON event batches, served cache-aside."""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, List, Optional, Sequence

from ..caching.orchestrator import CacheAsideOrchestrator, CacheResult, cluster_cache_key
from ..errors import QuakeScopeError, UpstreamComputationError, ValidationError
from ..storage.models import Event
from .clustering import find_clusters


logger = logging.getLogger(__name__)


DEFAULT_CLUSTER_TTL_SECONDS = 3600

ClustersCallback = Callable[[List[List[Event]]], None]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def events_from_features(features: Any) -> List[Event]:
    """
    Validate a batch of GeoJSON event features and convert them.

    Raises:
        ValidationError: Naming the first offending feature by index
    """
    if not isinstance(features, list):
        raise ValidationError("Invalid earthquakes payload: not an array.")
    if not features:
        raise ValidationError("Earthquakes array is empty, no clusters to calculate.")

    events: List[Event] = []
    for i, quake in enumerate(features):
        if not isinstance(quake, dict):
            raise ValidationError(f"Invalid earthquake object at index {i}: not an object.")
        label = f"index {i} (id: {quake.get('id') or 'N/A'})"

        geometry = quake.get("geometry")
        if not isinstance(geometry, dict):
            raise ValidationError(f"Invalid earthquake at {label}: missing or invalid 'geometry' object.")
        coords = geometry.get("coordinates")
        if not isinstance(coords, list) or len(coords) < 2 or not all(_is_number(c) for c in coords[:2]):
            raise ValidationError(
                f"Invalid earthquake at {label}: 'geometry.coordinates' must be an array of at least 2 numbers."
            )
        if len(coords) > 2 and coords[2] is not None and not _is_number(coords[2]):
            raise ValidationError(f"Invalid earthquake at {label}: depth coordinate must be a number.")
        props = quake.get("properties")
        if not isinstance(props, dict):
            raise ValidationError(f"Invalid earthquake at {label}: missing or invalid 'properties' object.")
        if not _is_number(props.get("time")):
            raise ValidationError(f"Invalid earthquake at {label}: 'properties.time' must be a number.")
        if quake.get("id") in (None, ""):
            raise ValidationError(f"Invalid earthquake at index {i}: missing 'id' property.")
        mag = props.get("mag")
        if mag is not None and not _is_number(mag):
            raise ValidationError(f"Invalid earthquake at {label}: 'properties.mag' must be a number.")

        events.append(Event.from_feature(quake))
    return events


def validate_cluster_parameters(max_distance_km: Any, min_quakes: Any) -> None:
    if not _is_number(max_distance_km) or max_distance_km <= 0:
        raise ValidationError("Invalid maxDistanceKm")
    if not _is_number(min_quakes) or int(min_quakes) != min_quakes or min_quakes <= 0:
        raise ValidationError("Invalid minQuakes")


class ClusterComputationService:
    """
    Clusters a caller-supplied batch and caches the result for an hour.

    ``on_computed`` sees the freshly computed clusters on every cache miss;
    the API uses it to queue significant-cluster registration.
    """

    def __init__(
        self,
        orchestrator: CacheAsideOrchestrator,
        ttl_seconds: float = DEFAULT_CLUSTER_TTL_SECONDS,
        on_computed: Optional[ClustersCallback] = None,
    ):
        self.orchestrator = orchestrator
        self.ttl_seconds = ttl_seconds
        self.on_computed = on_computed

    def _compute(self, events: Sequence[Event], max_distance_km: float, min_quakes: int) -> List[List[dict]]:
        clusters = find_clusters(events, max_distance_km, min_quakes)
        logger.info(
            "Computed %d clusters from %d events (max %.1f km, min %d)",
            len(clusters),
            len(events),
            max_distance_km,
            min_quakes,
        )
        if self.on_computed is not None and clusters:
            self.on_computed(clusters)
        return [[event.to_feature() for event in cluster] for cluster in clusters]

    def compute(self, features: Any, max_distance_km: Any, min_quakes: Any) -> CacheResult:
        """
        Clusters for a GeoJSON batch, from cache when available.

        Raises:
            ValidationError: Malformed batch or parameters
            UpstreamComputationError: Unexpected failure while clustering
        """
        events = events_from_features(features)
        validate_cluster_parameters(max_distance_km, min_quakes)
        min_quakes = int(min_quakes)

        key = cluster_cache_key([e.id for e in events], max_distance_km, min_quakes)
        try:
            return self.orchestrator.fetch(
                key,
                lambda: self._compute(events, max_distance_km, min_quakes),
                self.ttl_seconds,
            )
        except QuakeScopeError:
            raise
        except Exception as exc:
            logger.error("Cluster computation failed for %s: %s", key, exc, exc_info=True)
            raise UpstreamComputationError("Internal server error") from exc
