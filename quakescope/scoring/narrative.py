"""Visitor-facing regional summaries and educational text for fault context."""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List, Optional, Sequence

from ..storage.models import AssociationType, Event, NearbyFault


ACTIVE_LEVELS = {"Active", "Very Active"}


def _lower(text: Optional[str], default: str) -> str:
    return text.lower() if text else default


def magnitude_comparison(magnitude: Optional[float]) -> str:
    if magnitude is None:
        return "of unknown size"
    if magnitude < 3:
        return "barely felt by most people"
    if magnitude < 4:
        return "felt by many people but rarely causes damage"
    if magnitude < 5:
        return "felt by everyone and may cause minor damage"
    if magnitude < 6:
        return "can cause significant damage in populated areas"
    if magnitude < 7:
        return "can cause serious damage over large areas"
    return "can cause widespread devastation"


def dominant_fault_type(faults: Sequence[NearbyFault]) -> str:
    counts = Counter(f.fault.slip_type for f in faults if f.fault.slip_type)
    if not counts:
        return "Unknown"
    # most_common keeps first-seen order among ties.
    return counts.most_common(1)[0][0]


def regional_context(event: Event, faults: Sequence[NearbyFault]) -> Dict[str, Any]:
    count = len(faults)
    if count == 0:
        summary = "This earthquake occurred in an area with no major mapped faults nearby"
    elif count == 1:
        summary = f"This earthquake occurred near the {faults[0].fault.display_name}"
    else:
        summary = f"This earthquake occurred in an area with {count} mapped faults nearby"

    slip_types: List[str] = []
    for f in faults:
        if f.fault.slip_type and f.fault.slip_type not in slip_types:
            slip_types.append(f.fault.slip_type)
    environment = (
        f"Fault environment includes {', '.join(slip_types)} faults"
        if slip_types
        else "Fault environment is not characterised"
    )

    active = [f for f in faults if f.fault.activity_level in ACTIVE_LEVELS]
    if active:
        hazard = f"Moderate to high seismic hazard area with {len(active)} active fault(s)"
    else:
        hazard = "Low seismic hazard area with mostly slow-moving faults"

    return {
        "summary": summary,
        "fault_environment": environment,
        "hazard_context": hazard,
        "dominant_fault_type": dominant_fault_type(faults),
        "primary_fault_count": sum(
            1 for f in faults if f.association.association_type is AssociationType.PRIMARY
        ),
        "secondary_fault_count": sum(
            1 for f in faults if f.association.association_type is AssociationType.SECONDARY
        ),
    }


def educational_content(event: Event, faults: Sequence[NearbyFault]) -> Dict[str, Any]:
    size_comparison = f"This M{event.magnitude} earthquake is {magnitude_comparison(event.magnitude)}"

    if not faults:
        return {
            "earthquake_story": (
                "This earthquake occurred in an area without major mapped faults, "
                "possibly on a small unmapped fault"
            ),
            "fault_explanation": "No major faults are mapped in this area",
            "what_this_means": (
                "This earthquake shows that seismic activity can occur even in areas "
                "without major mapped faults"
            ),
            "for_visitors": {
                "simple_explanation": "Sometimes earthquakes happen on small faults we haven't mapped yet",
                "key_takeaway": "Earthquakes can surprise us in unexpected places",
                "size_comparison": size_comparison,
            },
        }

    closest = faults[0]
    name = closest.fault.display_name
    explanations = [
        f"{f.fault.display_name}: {f.fault.movement_description or 'Movement not described'} "
        f"and is {_lower(f.fault.activity_level, 'of unknown activity')}"
        for f in faults[:3]
    ]

    return {
        "earthquake_story": (
            f"This magnitude {event.magnitude} earthquake occurred near the {name} "
            f"({closest.association.proximity_description.lower()}), which "
            f"{_lower(closest.fault.movement_description, 'has no recorded movement description')}"
        ),
        "fault_explanation": "; ".join(explanations),
        "what_this_means": f"This earthquake demonstrates the ongoing activity of the {name} fault system",
        "for_visitors": {
            "simple_explanation": f"This earthquake happened because the {name} is slowly moving",
            "key_takeaway": (
                f"The {name} is {_lower(closest.fault.activity_level, 'of unknown activity')} "
                "and can cause earthquakes"
            ),
            "size_comparison": size_comparison,
        },
    }
