"""
Event-fault relevance scoring, classification and descriptions.

The relevance score blends three components, each clamped to [0, 1]:

    distance_score = max(0, 1 - distance / 100)
    activity_score = min(1, slip_rate / 50)
    size_score     = min(1, length / 100)
    relevance      = 0.5 * distance + 0.3 * activity + 0.2 * size

Classification is a pure function of (distance, relevance) so a stored
association can never disagree with the scoring rule.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, asdict
from typing import Dict, Optional

from ..storage.models import AssociationType, Event, EventFaultAssociation, Fault
from .weights import DEFAULT_WEIGHTS, RelevanceWeights


logger = logging.getLogger(__name__)


PRIMARY_MAX_DISTANCE_KM = 5.0
PRIMARY_MIN_RELEVANCE = 0.7
SECONDARY_MAX_DISTANCE_KM = 20.0
SECONDARY_MIN_RELEVANCE = 0.5

HIGH_ACTIVITY_SLIP_RATE = 10.0
MODERATE_ACTIVITY_SLIP_RATE = 5.0


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-component contributions behind a relevance score."""

    distance_score: float
    activity_score: float
    size_score: float
    relevance_score: float
    association_type: AssociationType

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["association_type"] = self.association_type.value
        return data


def _clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


def classify_association(distance_km: float, relevance_score: float) -> AssociationType:
    """Map (distance, relevance) onto primary / secondary / regional_context."""

    if distance_km < PRIMARY_MAX_DISTANCE_KM and relevance_score > PRIMARY_MIN_RELEVANCE:
        return AssociationType.PRIMARY
    if distance_km < SECONDARY_MAX_DISTANCE_KM and relevance_score > SECONDARY_MIN_RELEVANCE:
        return AssociationType.SECONDARY
    return AssociationType.REGIONAL_CONTEXT


# -----------------------------
# Descriptions
# -----------------------------

def relationship_description(distance_km: float) -> str:
    if distance_km < 1:
        return "This earthquake happened directly on the fault"
    if distance_km < 5:
        return "This earthquake happened very close to the fault"
    if distance_km < 20:
        return "This earthquake happened near the fault"
    return "This earthquake happened in the same region as the fault"


def proximity_description(distance_km: float) -> str:
    if distance_km < 1:
        return "Right on the fault"
    if distance_km < 5:
        return f"Very close ({distance_km:.1f}km away)"
    if distance_km < 20:
        return f"Close ({distance_km:.1f}km away)"
    if distance_km < 50:
        return f"Moderate distance ({distance_km:.0f}km away)"
    return f"Far ({distance_km:.0f}km away)"


def relevance_explanation(distance_km: float, slip_rate: Optional[float]) -> str:
    rate = slip_rate or 0.0
    if distance_km < 5 and rate > HIGH_ACTIVITY_SLIP_RATE:
        return "Very likely caused by this fault - close distance and high activity"
    if distance_km < 5:
        return "Likely related to this fault - very close distance"
    if distance_km < 20 and rate > MODERATE_ACTIVITY_SLIP_RATE:
        return "Possibly related to this fault - nearby and active"
    return "Provides regional geological context"


class FaultAssociationScorer:
    """
    Scores and describes the relationship between an event and a fault.

    Event attributes other than distance are accepted but not used yet; the
    signature leaves room for magnitude-aware size weighting.
    """

    def __init__(self, weights: Optional[RelevanceWeights] = None):
        self.weights = weights or DEFAULT_WEIGHTS
        self.weights.validate()

    def score(
        self,
        distance_km: float,
        slip_rate: Optional[float] = None,
        length_km: Optional[float] = None,
    ) -> ScoreBreakdown:
        """
        Compute the relevance score and classification.

        Raises:
            ValueError: If ``distance_km`` is negative or NaN
        """
        if math.isnan(distance_km) or distance_km < 0:
            raise ValueError(f"distance_km must be non-negative, got {distance_km}")

        w = self.weights
        distance_score = _clamp01(1 - distance_km / w.distance_scale_km)
        activity_score = _clamp01((slip_rate or 0.0) / w.slip_rate_scale)
        size_score = _clamp01((length_km or 0.0) / w.length_scale_km)

        weighted = (
            w.w_distance * distance_score
            + w.w_activity * activity_score
            + w.w_size * size_score
        )
        # Default weights sum to 1.0, so this is a no-op unless overridden.
        relevance = _clamp01(weighted / w.total)

        return ScoreBreakdown(
            distance_score=distance_score,
            activity_score=activity_score,
            size_score=size_score,
            relevance_score=relevance,
            association_type=classify_association(distance_km, relevance),
        )

    def build_association(
        self,
        event: Event,
        fault: Fault,
        distance_km: float,
    ) -> EventFaultAssociation:
        """Score, classify and describe one event-fault pair."""

        breakdown = self.score(distance_km, fault.slip_rate, fault.length_km)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Scored event %s vs fault %s (%s weights): %s",
                event.id,
                fault.fault_id,
                self.weights.name,
                breakdown.to_dict(),
            )

        return EventFaultAssociation(
            event_id=event.id,
            fault_id=fault.fault_id,
            distance_km=distance_km,
            relevance_score=breakdown.relevance_score,
            association_type=breakdown.association_type,
            relationship_description=relationship_description(distance_km),
            proximity_description=proximity_description(distance_km),
            relevance_explanation=relevance_explanation(distance_km, fault.slip_rate),
        )
