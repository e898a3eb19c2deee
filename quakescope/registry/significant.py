"""Register every significant cluster of a batch as a named definition."""

from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Optional, Protocol, Sequence

from ..spatial.clustering import ClusteringConfig, find_clusters_with_diagnostics, summarize_cluster
from ..storage.models import ClusterDefinition, Event
from .definitions import build_cluster_definition


logger = logging.getLogger(__name__)


DEFAULT_SIGNIFICANT_MIN_MAGNITUDE = 2.5


class DefinitionStore(Protocol):
    def store(self, definition: ClusterDefinition) -> ClusterDefinition: ...


@dataclass
class SignificantClusterReport:
    found: int = 0
    stored: int = 0
    errors: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def register_significant_clusters(
    clusters: Sequence[Sequence[Event]],
    registry: DefinitionStore,
    min_quakes: int,
    min_magnitude: float = DEFAULT_SIGNIFICANT_MIN_MAGNITUDE,
) -> SignificantClusterReport:
    """
    Store a definition for each cluster with at least ``min_quakes`` members
    whose strongest event reaches ``min_magnitude``.

    Definition ids derive from the stable key, so re-running over an
    overlapping batch replaces earlier definitions instead of duplicating
    them. A failing cluster is logged and counted; the rest still run.
    """
    report = SignificantClusterReport()

    for cluster in clusters:
        if not cluster:
            continue
        summary = summarize_cluster(cluster)
        if summary.quake_count < min_quakes or (summary.max_magnitude or 0.0) < min_magnitude:
            continue

        report.found += 1
        try:
            stored = registry.store(build_cluster_definition(summary))
        except Exception as exc:
            report.errors += 1
            logger.error(
                "Failed to register cluster around %s: %s", summary.strongest.id, exc, exc_info=True
            )
            continue
        report.stored += 1
        logger.debug("Registered %s as %s (version %d)", stored.stable_key, stored.id, stored.version)

    if report.found == 0:
        logger.info("No significant clusters met the registration criteria")
    logger.info(
        "Significant cluster registration finished: found=%d stored=%d errors=%d",
        report.found,
        report.stored,
        report.errors,
    )
    return report


def cluster_and_register(
    events: Sequence[Event],
    registry: DefinitionStore,
    config: Optional[ClusteringConfig] = None,
    min_magnitude: float = DEFAULT_SIGNIFICANT_MIN_MAGNITUDE,
) -> SignificantClusterReport:
    """Cluster ``events`` with ``config`` then register the significant clusters."""

    config = config or ClusteringConfig()
    clusters, _ = find_clusters_with_diagnostics(events, config)
    return register_significant_clusters(clusters, registry, config.min_quakes, min_magnitude)
