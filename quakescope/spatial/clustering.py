"""
Greedy seed-based spatial clustering of seismic events.

This module provides:
1. Single-pass seed-greedy grouping (strongest events seed first)
2. Minimum-size filtering (undersized groups are dropped, not redistributed)
3. Per-cluster summaries (strongest member, magnitude/time/depth statistics)
4. Diagnostics for tuning the linking distance

Only great-circle distance links events. There is no temporal
window: two events months apart at the same spot end up in one cluster.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from ..storage.models import Event
from .distance import centroid, great_circle_distance


logger = logging.getLogger(__name__)


@dataclass
class ClusteringConfig:
    """Parameters for :func:`find_clusters`."""

    max_distance_km: float = 100.0
    """Maximum seed-to-member great-circle distance."""

    min_quakes: int = 3
    """Minimum members for a cluster to be kept."""

    def validate(self) -> None:
        if not (isinstance(self.max_distance_km, (int, float)) and self.max_distance_km > 0):
            raise ValueError("max_distance_km must be a positive number")
        if not (isinstance(self.min_quakes, int) and self.min_quakes > 0):
            raise ValueError("min_quakes must be a positive integer")


@dataclass
class ClusteringDiagnostics:
    """Counts describing one clustering run."""

    num_events: int
    num_clusters: int = 0
    num_clustered: int = 0
    discarded_groups: int = 0
    """Groups formed around a seed but below ``min_quakes``."""

    cluster_sizes: List[int] = field(default_factory=list)


def _magnitude_key(event: Event) -> float:
    return -(event.magnitude if event.magnitude is not None else 0.0)


def find_clusters(
    events: Sequence[Event],
    max_distance_km: float,
    min_quakes: int,
) -> List[List[Event]]:
    """
    Group events around the strongest unassigned seeds.

    Args:
        events: Events to group (order breaks magnitude ties)
        max_distance_km: Link any unassigned event within this distance of the seed
        min_quakes: Drop groups smaller than this

    Returns:
        Clusters as lists of events, seed first, in seed order
    """
    clusters, _ = find_clusters_with_diagnostics(events, ClusteringConfig(max_distance_km, min_quakes))
    return clusters


def find_clusters_with_diagnostics(
    events: Sequence[Event],
    config: Optional[ClusteringConfig] = None,
) -> Tuple[List[List[Event]], ClusteringDiagnostics]:
    """Same as :func:`find_clusters` but also returns run diagnostics."""

    if config is None:
        config = ClusteringConfig()
    config.validate()

    # sorted() is stable, so equal magnitudes keep input order.
    ordered = sorted(events, key=_magnitude_key)
    assigned: Set[str] = set()
    clusters: List[List[Event]] = []
    diagnostics = ClusteringDiagnostics(num_events=len(events))

    for seed in ordered:
        if seed.id in assigned:
            continue

        group = [seed]
        assigned.add(seed.id)

        for other in ordered:
            if other.id in assigned:
                continue
            distance = great_circle_distance(seed.lat, seed.lon, other.lat, other.lon)
            if distance <= config.max_distance_km:
                group.append(other)
                assigned.add(other.id)

        if len(group) >= config.min_quakes:
            clusters.append(group)
            diagnostics.cluster_sizes.append(len(group))
        else:
            # Members stay assigned and are never reconsidered.
            diagnostics.discarded_groups += 1

    diagnostics.num_clusters = len(clusters)
    diagnostics.num_clustered = sum(diagnostics.cluster_sizes)

    logger.debug(
        "Clustered %d events into %d clusters (%d undersized groups dropped, max %.1f km, min %d)",
        diagnostics.num_events,
        diagnostics.num_clusters,
        diagnostics.discarded_groups,
        config.max_distance_km,
        config.min_quakes,
    )
    return clusters, diagnostics


# -----------------------------
# Cluster summaries
# -----------------------------

@dataclass
class ClusterSummary:
    """Derived statistics for one cluster."""

    events: List[Event]
    strongest: Event
    quake_count: int
    max_magnitude: Optional[float]
    mean_magnitude: Optional[float]
    min_magnitude: Optional[float]
    start_time: Optional[int]
    end_time: Optional[int]
    duration_hours: float
    depth_range: str
    centroid_lat: float
    centroid_lon: float
    radius_km: float
    location_name: str

    @property
    def event_ids(self) -> List[str]:
        return [e.id for e in self.events]


def strongest_event(cluster: Iterable[Event]) -> Event:
    """Highest-magnitude member; the earliest listed wins ties."""

    best: Optional[Event] = None
    for event in cluster:
        if best is None or (event.magnitude or 0.0) > (best.magnitude or 0.0):
            best = event
    if best is None:
        raise ValueError("Cannot pick the strongest event of an empty cluster")
    return best


def depth_range_label(cluster: Sequence[Event]) -> str:
    depths = [e.depth for e in cluster if e.depth is not None and math.isfinite(e.depth)]
    if not depths:
        return "Unknown"
    return f"{min(depths):.1f}-{max(depths):.1f}km"


def summarize_cluster(cluster: Sequence[Event]) -> ClusterSummary:
    """
    Build a :class:`ClusterSummary` for a non-empty cluster.

    Raises:
        ValueError: If ``cluster`` is empty
    """
    if not cluster:
        raise ValueError("Cannot summarize an empty cluster")

    strongest = strongest_event(cluster)
    magnitudes = [e.magnitude for e in cluster if e.magnitude is not None]
    times = [e.time for e in cluster if e.time is not None]

    start_time = min(times) if times else None
    end_time = max(times) if times else None
    duration_hours = 0.0
    if start_time is not None and end_time is not None and end_time > start_time:
        duration_hours = (end_time - start_time) / (1000 * 60 * 60)

    center = centroid([(e.lat, e.lon) for e in cluster])
    radius = max(great_circle_distance(center.lat, center.lon, e.lat, e.lon) for e in cluster)

    return ClusterSummary(
        events=list(cluster),
        strongest=strongest,
        quake_count=len(cluster),
        max_magnitude=max(magnitudes) if magnitudes else None,
        mean_magnitude=sum(magnitudes) / len(magnitudes) if magnitudes else None,
        min_magnitude=min(magnitudes) if magnitudes else None,
        start_time=start_time,
        end_time=end_time,
        duration_hours=duration_hours,
        depth_range=depth_range_label(cluster),
        centroid_lat=center.lat,
        centroid_lon=center.lon,
        radius_km=radius,
        location_name=strongest.place or "Unknown Location",
    )
