"""Fault-context composition for a single event, served cache-aside."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict

from ..caching.orchestrator import CacheAsideOrchestrator, CacheResult, fault_context_cache_key
from ..errors import NotFoundError, QuakeScopeError, UpstreamComputationError, ValidationError
from ..scoring.narrative import educational_content, regional_context
from ..storage.repositories import AssociationRepository, EventRepository
from .backfill import FaultAssociationBackfill


logger = logging.getLogger(__name__)


DEFAULT_RADIUS_KM = 100.0
DEFAULT_LIMIT = 5
DEFAULT_TTL_SECONDS = 7200


def validate_fault_context_request(event_id: Any, radius_km: Any, limit: Any) -> None:
    """
    Raises:
        ValidationError: On an empty id, a non-positive radius or limit
    """
    if not isinstance(event_id, str) or not event_id.strip():
        raise ValidationError("Earthquake ID is required")
    if isinstance(radius_km, bool) or not isinstance(radius_km, (int, float)):
        raise ValidationError("radius must be a number")
    if not math.isfinite(radius_km) or radius_km <= 0:
        raise ValidationError("radius must be a positive number")
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise ValidationError("limit must be a positive integer")


class FaultContextService:
    """
    Builds the fault-context payload for an event.

    Associations are read from the store; when an event has none yet, the
    backfill runs once and the store is re-read so the returned order
    (relevance desc, then distance asc) is the same either way.
    """

    def __init__(
        self,
        events: EventRepository,
        associations: AssociationRepository,
        backfill: FaultAssociationBackfill,
        orchestrator: CacheAsideOrchestrator,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
    ):
        self.events = events
        self.associations = associations
        self.backfill = backfill
        self.orchestrator = orchestrator
        self.ttl_seconds = ttl_seconds

    def compose(self, event_id: str, radius_km: float, limit: int) -> Dict[str, Any]:
        """Uncached payload. Runs the backfill when the event has no associations."""

        event = self.events.get(event_id)
        if event is None:
            raise NotFoundError("Earthquake not found")

        nearby = self.associations.list_for_event(event.id, limit)
        if not nearby:
            logger.info("No associations for event %s, running backfill", event.id)
            self.backfill.run(event, radius_km)
            nearby = self.associations.list_for_event(event.id, limit)

        return {
            "earthquake": event.to_summary(),
            "nearby_faults": [f.to_dict() for f in nearby],
            "regional_context": regional_context(event, nearby),
            "educational_content": educational_content(event, nearby),
            "search_params": {
                "radius_km": radius_km,
                "limit": limit,
                "faults_found": len(nearby),
            },
        }

    def get_fault_context(
        self,
        event_id: str,
        radius_km: float = DEFAULT_RADIUS_KM,
        limit: int = DEFAULT_LIMIT,
    ) -> CacheResult:
        """
        Fault context for ``event_id``, from cache when available.

        Raises:
            ValidationError: Malformed parameters (nothing is read)
            NotFoundError: Unknown event
            UpstreamComputationError: Store or computation failure
        """
        validate_fault_context_request(event_id, radius_km, limit)

        key = fault_context_cache_key(event_id, radius_km, limit)
        try:
            return self.orchestrator.fetch(
                key,
                lambda: self.compose(event_id, radius_km, limit),
                self.ttl_seconds,
            )
        except QuakeScopeError:
            raise
        except Exception as exc:
            logger.error("Fault context failed for event %s: %s", event_id, exc, exc_info=True)
            raise UpstreamComputationError("Failed to retrieve fault context") from exc
