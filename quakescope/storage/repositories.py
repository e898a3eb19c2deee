"""
SQL access per entity.

Each repository maps rows to the typed records in :mod:`.models` at the
boundary, so nothing above this layer handles raw row dicts. The only write
primitive is an idempotent upsert (replace whole row by key).
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from ..spatial.distance import BoundingBox
from .database import Database
from .models import (
    CLUSTER_DEFINITION_COLUMNS,
    ClusterDefinition,
    Event,
    EventFaultAssociation,
    Fault,
    NearbyFault,
)


logger = logging.getLogger(__name__)


# -----------------------------
# Events
# -----------------------------

class EventRepository:
    """Read-only access to recorded seismic events."""

    def __init__(self, db: Database):
        self.db = db

    def get(self, event_id: str) -> Optional[Event]:
        row = self.db.fetch_one(
            "SELECT id, event_time, latitude, longitude, depth, magnitude, place "
            "FROM earthquake_events WHERE id = %s",
            (event_id,),
        )
        return Event.from_row(row) if row else None


# -----------------------------
# Faults
# -----------------------------

_FAULT_COLUMNS = (
    "fault_id",
    "name",
    "display_name",
    "movement_description",
    "activity_level",
    "speed_description",
    "depth_description",
    "hazard_description",
    "slip_type",
    "net_slip_rate_best",
    "length_km",
    "geom_linestring",
    "bbox_min_lat",
    "bbox_max_lat",
    "bbox_min_lon",
    "bbox_max_lon",
)


class FaultRepository:
    """Fault reference data with coarse bounding-box filtering."""

    def __init__(self, db: Database):
        self.db = db

    def find_intersecting(self, bbox: BoundingBox) -> List[Fault]:
        """Faults whose stored bounding box overlaps ``bbox``."""

        rows = self.db.fetch_all(
            f"SELECT {', '.join(_FAULT_COLUMNS)} FROM active_faults "
            "WHERE bbox_max_lat >= %s AND bbox_min_lat <= %s "
            "AND bbox_max_lon >= %s AND bbox_min_lon <= %s",
            (bbox.min_lat, bbox.max_lat, bbox.min_lon, bbox.max_lon),
        )
        return [Fault.from_row(row) for row in rows]

    def upsert_many(self, faults: Iterable[Fault]) -> int:
        """Load or refresh fault reference rows. Returns the number written."""

        columns = ", ".join(_FAULT_COLUMNS)
        placeholders = ", ".join(["%s"] * len(_FAULT_COLUMNS))
        updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in _FAULT_COLUMNS if c != "fault_id")
        sql = (
            f"INSERT INTO active_faults ({columns}) VALUES ({placeholders}) "
            f"ON CONFLICT (fault_id) DO UPDATE SET {updates}, updated_at = CURRENT_TIMESTAMP"
        )
        params = [
            (
                f.fault_id,
                f.display_name,
                f.display_name,
                f.movement_description,
                f.activity_level,
                f.speed_description,
                f.depth_description,
                f.hazard_description,
                f.slip_type,
                f.slip_rate,
                f.length_km,
                f.geometry,
                f.bbox.min_lat,
                f.bbox.max_lat,
                f.bbox.min_lon,
                f.bbox.max_lon,
            )
            for f in faults
        ]
        self.db.execute_many(sql, params)
        return len(params)


# -----------------------------
# Associations
# -----------------------------

_UPSERT_ASSOCIATION_SQL = """
INSERT INTO earthquake_fault_associations (
    earthquake_id, fault_id, distance_km,
    relationship_description, proximity_description, relevance_explanation,
    relevance_score, association_type
) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
ON CONFLICT (earthquake_id, fault_id) DO UPDATE SET
    distance_km = EXCLUDED.distance_km,
    relationship_description = EXCLUDED.relationship_description,
    proximity_description = EXCLUDED.proximity_description,
    relevance_explanation = EXCLUDED.relevance_explanation,
    relevance_score = EXCLUDED.relevance_score,
    association_type = EXCLUDED.association_type,
    updated_at = CURRENT_TIMESTAMP
"""

_NEARBY_FAULTS_SQL = """
SELECT
    a.earthquake_id, a.fault_id, a.distance_km,
    a.relationship_description, a.proximity_description, a.relevance_explanation,
    a.relevance_score, a.association_type,
    f.name, f.display_name, f.movement_description, f.activity_level,
    f.speed_description, f.depth_description, f.hazard_description,
    f.slip_type, f.net_slip_rate_best, f.length_km, f.geom_linestring,
    f.bbox_min_lat, f.bbox_max_lat, f.bbox_min_lon, f.bbox_max_lon
FROM earthquake_fault_associations a
JOIN active_faults f ON f.fault_id = a.fault_id
WHERE a.earthquake_id = %s
ORDER BY a.relevance_score DESC, a.distance_km ASC
LIMIT %s
"""


class AssociationRepository:
    """Scored event-fault relationships keyed by ``(earthquake_id, fault_id)``."""

    def __init__(self, db: Database):
        self.db = db

    def upsert_many(self, associations: Iterable[EventFaultAssociation]) -> int:
        params = [
            (
                a.event_id,
                a.fault_id,
                a.distance_km,
                a.relationship_description,
                a.proximity_description,
                a.relevance_explanation,
                a.relevance_score,
                a.association_type.value,
            )
            for a in associations
        ]
        self.db.execute_many(_UPSERT_ASSOCIATION_SQL, params)
        return len(params)

    def list_for_event(self, event_id: str, limit: int) -> List[NearbyFault]:
        """Associations for one event, most relevant first, then nearest."""

        rows = self.db.fetch_all(_NEARBY_FAULTS_SQL, (event_id, limit))
        return [
            NearbyFault(association=EventFaultAssociation.from_row(row), fault=Fault.from_row(row))
            for row in rows
        ]


# -----------------------------
# Cluster definitions
# -----------------------------

_DEFINITION_WRITE_COLUMNS = [c for c in CLUSTER_DEFINITION_COLUMNS if c != "version"]


def _build_definition_upsert() -> str:
    columns = ", ".join(_DEFINITION_WRITE_COLUMNS)
    placeholders = ", ".join(["%s"] * len(_DEFINITION_WRITE_COLUMNS))
    updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in _DEFINITION_WRITE_COLUMNS if c != "id")
    returning = ", ".join(CLUSTER_DEFINITION_COLUMNS)
    return (
        f"INSERT INTO cluster_definitions ({columns}, version) VALUES ({placeholders}, 1) "
        f"ON CONFLICT (id) DO UPDATE SET {updates}, "
        "version = cluster_definitions.version + 1, updated_at = CURRENT_TIMESTAMP "
        f"RETURNING {returning}"
    )


_UPSERT_DEFINITION_SQL = _build_definition_upsert()
_SELECT_DEFINITION_SQL = f"SELECT {', '.join(CLUSTER_DEFINITION_COLUMNS)} FROM cluster_definitions"


class ClusterDefinitionRepository:
    """Durable, versioned cluster definitions."""

    def __init__(self, db: Database):
        self.db = db

    def upsert(self, definition: ClusterDefinition) -> ClusterDefinition:
        """
        Insert or replace a definition by id.

        Returns:
            The stored record; ``version`` is 1 on insert and bumped by one on
            every replacement.
        """
        row = definition.to_row()
        params = tuple(row[CLUSTER_DEFINITION_COLUMNS[c]] for c in _DEFINITION_WRITE_COLUMNS)
        stored = self.db.fetch_one(_UPSERT_DEFINITION_SQL, params)
        if stored is None:
            # RETURNING always yields a row; keep the caller's view if a driver does not.
            return definition
        result = ClusterDefinition.from_row(stored)
        logger.debug("Stored cluster definition %s (version %d)", result.id, result.version)
        return result

    def get(self, definition_id: str) -> Optional[ClusterDefinition]:
        row = self.db.fetch_one(f"{_SELECT_DEFINITION_SQL} WHERE id = %s", (definition_id,))
        return ClusterDefinition.from_row(row) if row else None

    def get_by_slug(self, slug: str) -> Optional[ClusterDefinition]:
        row = self.db.fetch_one(f"{_SELECT_DEFINITION_SQL} WHERE slug = %s", (slug,))
        return ClusterDefinition.from_row(row) if row else None
