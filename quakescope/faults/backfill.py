"""
On-demand computation of event-fault associations.

Runs when an event has no stored associations yet:
1. Bounding box around the event sized by the search radius
2. Coarse candidate query against the stored fault bounding boxes, split
   in two where the box crosses the antimeridian
3. Exact point-to-polyline distance per candidate
4. Faults beyond the radius are dropped
5. Survivors are scored, classified and upserted by (event, fault)

Upserts make re-running the backfill for the same event harmless.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional

from ..scoring.fault_scorer import FaultAssociationScorer
from ..spatial.distance import bounding_box_around, distance_to_fault
from ..storage.models import Event, EventFaultAssociation, Fault
from ..storage.repositories import AssociationRepository, FaultRepository


logger = logging.getLogger(__name__)


class FaultAssociationBackfill:
    """Computes and persists associations between one event and nearby faults."""

    def __init__(
        self,
        faults: FaultRepository,
        associations: AssociationRepository,
        scorer: Optional[FaultAssociationScorer] = None,
    ):
        self.faults = faults
        self.associations = associations
        self.scorer = scorer or FaultAssociationScorer()

    def compute(self, event: Event, radius_km: float) -> List[EventFaultAssociation]:
        """Score every fault within ``radius_km`` of ``event`` without writing."""

        bbox = bounding_box_around(event.point, radius_km)
        candidates: Dict[str, Fault] = {}
        # One query per side when the box crosses the antimeridian.
        for part in bbox.split_antimeridian():
            for fault in self.faults.find_intersecting(part):
                candidates.setdefault(fault.fault_id, fault)

        results: List[EventFaultAssociation] = []
        for fault in candidates.values():
            distance = distance_to_fault(event.point, fault.geometry)
            if math.isinf(distance) or distance > radius_km:
                continue
            results.append(self.scorer.build_association(event, fault, distance))

        logger.info(
            "Backfill for event %s: %d candidate faults in bbox, %d within %.1f km",
            event.id,
            len(candidates),
            len(results),
            radius_km,
        )
        return results

    def run(self, event: Event, radius_km: float) -> List[EventFaultAssociation]:
        """Compute associations and upsert them. Returns what was written."""

        associations = self.compute(event, radius_km)
        if associations:
            self.associations.upsert_many(associations)
        return associations
