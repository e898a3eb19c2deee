"""
Scoring Module for event-fault associations

Provides:
- Relevance scoring (proximity, fault activity, fault size)
- Deterministic association classification
- Canned relationship/proximity/relevance descriptions
- Regional and educational summaries for the fault-context payload

Usage:
    from quakescope.scoring import FaultAssociationScorer, classify_association

    scorer = FaultAssociationScorer()
    breakdown = scorer.score(distance_km=3.2, slip_rate=12.0, length_km=80.0)
"""

from .weights import (
    RelevanceWeights,
    DEFAULT_WEIGHTS,
    load_weights_from_yaml,
    weights_from_mapping,
)

from .fault_scorer import (
    FaultAssociationScorer,
    ScoreBreakdown,
    classify_association,
    proximity_description,
    relationship_description,
    relevance_explanation,
)

from .narrative import (
    educational_content,
    magnitude_comparison,
    regional_context,
)

__all__ = [
    # Weights
    "RelevanceWeights",
    "DEFAULT_WEIGHTS",
    "load_weights_from_yaml",
    "weights_from_mapping",

    # Scoring
    "FaultAssociationScorer",
    "ScoreBreakdown",
    "classify_association",
    "proximity_description",
    "relationship_description",
    "relevance_explanation",

    # Narrative
    "educational_content",
    "magnitude_comparison",
    "regional_context",
]
