"""
Unit Tests for Scoring Module (quakescope/scoring)

Tests relevance components, classification boundaries, canned descriptions,
weight loading, and the regional/educational narrative.
"""

import pytest

from quakescope.scoring import (
    DEFAULT_WEIGHTS,
    FaultAssociationScorer,
    RelevanceWeights,
    classify_association,
    educational_content,
    load_weights_from_yaml,
    magnitude_comparison,
    proximity_description,
    regional_context,
    relationship_description,
    relevance_explanation,
    weights_from_mapping,
)
from quakescope.storage.models import AssociationType, Event, NearbyFault

from tests.conftest import make_fault


# ==============================================================================
# Relevance score
# ==============================================================================

class TestRelevanceScore:
    """Test the weighted relevance formula."""

    def test_components(self):
        breakdown = FaultAssociationScorer().score(distance_km=10.0, slip_rate=25.0, length_km=40.0)
        assert breakdown.distance_score == pytest.approx(0.9)
        assert breakdown.activity_score == pytest.approx(0.5)
        assert breakdown.size_score == pytest.approx(0.4)
        assert breakdown.relevance_score == pytest.approx(0.5 * 0.9 + 0.3 * 0.5 + 0.2 * 0.4)

    def test_missing_attributes_default_to_zero(self):
        breakdown = FaultAssociationScorer().score(distance_km=0.0)
        assert breakdown.activity_score == 0.0
        assert breakdown.size_score == 0.0
        assert breakdown.relevance_score == pytest.approx(0.5)

    def test_components_saturate(self):
        breakdown = FaultAssociationScorer().score(distance_km=0.0, slip_rate=500.0, length_km=1000.0)
        assert breakdown.relevance_score == pytest.approx(1.0)

    def test_distance_beyond_scale_contributes_nothing(self):
        breakdown = FaultAssociationScorer().score(distance_km=250.0, slip_rate=0.0, length_km=0.0)
        assert breakdown.distance_score == 0.0
        assert breakdown.relevance_score == 0.0

    @pytest.mark.parametrize("distance", [0.0, 0.5, 4.99, 19.0, 99.0, 100.0, 5000.0])
    @pytest.mark.parametrize("slip_rate", [None, 0.0, 3.0, 49.0, 50.0, 120.0])
    @pytest.mark.parametrize("length", [None, 0.0, 12.0, 100.0, 900.0])
    def test_relevance_always_in_unit_interval(self, distance, slip_rate, length):
        score = FaultAssociationScorer().score(distance, slip_rate, length).relevance_score
        assert 0.0 <= score <= 1.0

    @pytest.mark.parametrize("distance", [-0.1, float("nan")])
    def test_invalid_distance_rejected(self, distance):
        with pytest.raises(ValueError):
            FaultAssociationScorer().score(distance)

    def test_custom_weights_are_normalised(self):
        weights = RelevanceWeights(w_distance=1.0, w_activity=1.0, w_size=0.0, name="even")
        breakdown = FaultAssociationScorer(weights).score(distance_km=0.0, slip_rate=0.0)
        assert breakdown.relevance_score == pytest.approx(0.5)


# ==============================================================================
# Classification
# ==============================================================================

class TestClassification:
    """Test primary / secondary / regional_context boundaries."""

    @pytest.mark.parametrize(
        "distance,relevance,expected",
        [
            (4.9, 0.71, AssociationType.PRIMARY),
            (4.9, 0.6, AssociationType.SECONDARY),
            (25.0, 0.9, AssociationType.REGIONAL_CONTEXT),
            (5.0, 0.9, AssociationType.SECONDARY),
            (4.9, 0.7, AssociationType.SECONDARY),
            (19.9, 0.51, AssociationType.SECONDARY),
            (19.9, 0.5, AssociationType.REGIONAL_CONTEXT),
            (20.0, 0.9, AssociationType.REGIONAL_CONTEXT),
        ],
    )
    def test_boundaries(self, distance, relevance, expected):
        assert classify_association(distance, relevance) is expected

    def test_score_classification_matches_rule(self):
        scorer = FaultAssociationScorer()
        for distance in (0.0, 3.0, 8.0, 15.0, 30.0, 80.0):
            for slip in (0.0, 10.0, 40.0):
                breakdown = scorer.score(distance, slip, 100.0)
                assert breakdown.association_type is classify_association(distance, breakdown.relevance_score)


# ==============================================================================
# Descriptions
# ==============================================================================

class TestDescriptions:
    """Test the canned description ladders."""

    @pytest.mark.parametrize(
        "distance,fragment",
        [
            (0.2, "directly on the fault"),
            (3.0, "very close to the fault"),
            (12.0, "near the fault"),
            (45.0, "in the same region as the fault"),
        ],
    )
    def test_relationship(self, distance, fragment):
        assert fragment in relationship_description(distance)

    @pytest.mark.parametrize(
        "distance,expected",
        [
            (0.4, "Right on the fault"),
            (3.14, "Very close (3.1km away)"),
            (12.26, "Close (12.3km away)"),
            (33.4, "Moderate distance (33km away)"),
            (72.6, "Far (73km away)"),
        ],
    )
    def test_proximity(self, distance, expected):
        assert proximity_description(distance) == expected

    @pytest.mark.parametrize(
        "distance,slip,fragment",
        [
            (2.0, 12.0, "Very likely caused by this fault"),
            (2.0, 3.0, "Likely related to this fault"),
            (2.0, None, "Likely related to this fault"),
            (15.0, 6.0, "Possibly related to this fault"),
            (15.0, 4.0, "regional geological context"),
            (40.0, 30.0, "regional geological context"),
        ],
    )
    def test_relevance_explanation(self, distance, slip, fragment):
        assert fragment in relevance_explanation(distance, slip)


class TestBuildAssociation:
    """Test scoring an event against a fault end to end."""

    def test_event_on_fault_is_primary(self):
        """Slip 15, long fault, zero distance."""
        event = Event(id="ev1", lat=35.0, lon=-118.0, magnitude=4.0)
        fault = make_fault("f1", [[-118.1, 35.0], [-117.9, 35.0]], slip_rate=15.0, length_km=100.0)

        association = FaultAssociationScorer().build_association(event, fault, 0.0)

        assert association.event_id == "ev1"
        assert association.fault_id == "f1"
        assert association.relevance_score == pytest.approx(0.79)
        assert association.relevance_score > 0.7
        assert association.association_type is AssociationType.PRIMARY
        assert "happened directly on the fault" in association.relationship_description
        assert association.proximity_description == "Right on the fault"
        assert association.relevance_explanation.startswith("Very likely caused")


# ==============================================================================
# Weights
# ==============================================================================

class TestWeights:
    """Test weight configuration."""

    def test_defaults(self):
        assert DEFAULT_WEIGHTS.w_distance == 0.5
        assert DEFAULT_WEIGHTS.w_activity == 0.3
        assert DEFAULT_WEIGHTS.w_size == 0.2
        assert DEFAULT_WEIGHTS.total == pytest.approx(1.0)

    def test_from_mapping_ignores_unknown_keys(self):
        weights = weights_from_mapping({"w_distance": 0.6, "w_activity": 0.2, "bogus": 1}, name="alt")
        assert weights.w_distance == 0.6
        assert weights.w_size == 0.2
        assert weights.name == "alt"

    def test_from_empty_mapping_is_default(self):
        assert weights_from_mapping(None) is DEFAULT_WEIGHTS

    @pytest.mark.parametrize(
        "values",
        [{"w_distance": -0.1}, {"w_distance": 0, "w_activity": 0, "w_size": 0}, {"slip_rate_scale": 0}],
    )
    def test_invalid_weights(self, values):
        with pytest.raises(ValueError):
            weights_from_mapping(values)

    def test_load_from_yaml(self, tmp_path):
        path = tmp_path / "weights.yaml"
        path.write_text("scoring:\n  w_distance: 0.4\n  w_activity: 0.4\n  w_size: 0.2\n")
        weights = load_weights_from_yaml(path)
        assert weights.w_activity == 0.4
        assert weights.name == "weights"

    def test_load_missing_yaml(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_weights_from_yaml(tmp_path / "absent.yaml")


# ==============================================================================
# Narrative
# ==============================================================================

class TestNarrative:
    """Test regional context and educational text."""

    @pytest.fixture
    def event(self):
        return Event(id="ev1", lat=35.0, lon=-118.0, magnitude=4.2)

    @pytest.fixture
    def nearby(self, event):
        scorer = FaultAssociationScorer()
        on = make_fault(
            "on",
            [[-118.1, 35.0], [-117.9, 35.0]],
            slip_rate=15.0,
            length_km=100.0,
            display_name="Garlock Fault",
            slip_type="Strike-slip",
            activity_level="Very Active",
            movement_description="Slides side-to-side",
        )
        near = make_fault("near", [[-118.1, 35.09], [-117.9, 35.09]], slip_rate=1.0, slip_type="Reverse")
        return [
            NearbyFault(scorer.build_association(event, on, 0.0), on),
            NearbyFault(scorer.build_association(event, near, 10.0), near),
        ]

    def test_magnitude_ladder(self):
        assert magnitude_comparison(2.5) == "barely felt by most people"
        assert magnitude_comparison(4.2) == "felt by everyone and may cause minor damage"
        assert magnitude_comparison(7.8) == "can cause widespread devastation"
        assert magnitude_comparison(None) == "of unknown size"

    def test_regional_context_counts(self, event, nearby):
        context = regional_context(event, nearby)
        assert context["summary"] == "This earthquake occurred in an area with 2 mapped faults nearby"
        assert context["fault_environment"] == "Fault environment includes Strike-slip, Reverse faults"
        assert context["primary_fault_count"] == 1
        assert context["dominant_fault_type"] == "Strike-slip"
        assert "1 active fault(s)" in context["hazard_context"]

    def test_regional_context_without_faults(self, event):
        context = regional_context(event, [])
        assert "no major mapped faults" in context["summary"]
        assert context["dominant_fault_type"] == "Unknown"

    def test_educational_content_names_closest_fault(self, event, nearby):
        content = educational_content(event, nearby)
        assert content["earthquake_story"].startswith("This magnitude 4.2 earthquake occurred near the Garlock Fault")
        assert "slides side-to-side" in content["earthquake_story"]
        assert content["for_visitors"]["key_takeaway"] == "The Garlock Fault is very active and can cause earthquakes"
        assert content["for_visitors"]["size_comparison"].startswith("This M4.2 earthquake is felt by everyone")

    def test_educational_content_without_faults(self, event):
        content = educational_content(event, [])
        assert content["fault_explanation"] == "No major faults are mapped in this area"
