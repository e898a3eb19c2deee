"""Service wiring for the API server."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from quakescope.caching import BackgroundWriter, CacheAsideOrchestrator, KeyValueCache, TTLKeyValueCache
from quakescope.faults import FaultAssociationBackfill, FaultContextService
from quakescope.registry import ClusterDefinitionRegistry, TTLClusterDefinitionRegistry
from quakescope.registry.significant import register_significant_clusters
from quakescope.scoring import FaultAssociationScorer
from quakescope.spatial.cluster_service import ClusterComputationService, ClustersCallback
from quakescope.storage import (
    AssociationRepository,
    ClusterDefinitionRepository,
    Database,
    Event,
    EventRepository,
    FaultRepository,
)
from quakescope.tools.config_loader import AppSettings


logger = logging.getLogger(__name__)

Registry = Union[ClusterDefinitionRegistry, TTLClusterDefinitionRegistry]


@dataclass
class Services:
    """Everything the routes need, built once per process."""

    settings: AppSettings
    fault_context: FaultContextService
    clusters: ClusterComputationService
    registry: Registry
    cache: KeyValueCache
    writer: BackgroundWriter
    database: Optional[Database] = None

    def close(self) -> None:
        self.writer.shutdown()
        if self.database is not None:
            self.database.close()


def significant_cluster_hook(
    writer: BackgroundWriter,
    registry: Registry,
    settings: AppSettings,
) -> ClustersCallback:
    """Queue registration of significant clusters after each computation."""

    def _queue(clusters: List[List[Event]]) -> None:
        writer.submit(
            "significant cluster registration",
            register_significant_clusters,
            clusters,
            registry,
            settings.cluster_min_quakes,
            settings.significant_min_magnitude,
        )

    return _queue


def assemble_services(
    settings: AppSettings,
    *,
    events: EventRepository,
    faults: FaultRepository,
    associations: AssociationRepository,
    registry: Registry,
    cache: KeyValueCache,
    writer: BackgroundWriter,
    database: Optional[Database] = None,
) -> Services:
    """Wire services from already-built stores. Tests pass in-memory stores here."""

    orchestrator = CacheAsideOrchestrator(cache, writer)
    backfill = FaultAssociationBackfill(faults, associations, FaultAssociationScorer(settings.weights))
    fault_context = FaultContextService(
        events,
        associations,
        backfill,
        orchestrator,
        ttl_seconds=settings.fault_context_ttl_seconds,
    )
    hook = significant_cluster_hook(writer, registry, settings) if settings.register_significant_clusters else None
    clusters = ClusterComputationService(orchestrator, ttl_seconds=settings.cluster_ttl_seconds, on_computed=hook)
    return Services(
        settings=settings,
        fault_context=fault_context,
        clusters=clusters,
        registry=registry,
        cache=cache,
        writer=writer,
        database=database,
    )


def build_services(settings: AppSettings) -> Services:
    """Production wiring: psycopg pool, in-process TTL cache, thread-pool writer."""

    database = Database.from_config(settings.database)
    database.open()

    cache = TTLKeyValueCache(maxsize=settings.cache_max_entries)
    writer = BackgroundWriter(max_workers=settings.writer_workers)

    registry: Registry
    if settings.definition_registry == "ttl":
        registry = TTLClusterDefinitionRegistry(cache, ttl_seconds=settings.cluster_definition_ttl_seconds)
    else:
        registry = ClusterDefinitionRegistry(ClusterDefinitionRepository(database))
    logger.info("Cluster definitions use the %s registry", settings.definition_registry)

    return assemble_services(
        settings,
        events=EventRepository(database),
        faults=FaultRepository(database),
        associations=AssociationRepository(database),
        registry=registry,
        cache=cache,
        writer=writer,
        database=database,
    )
