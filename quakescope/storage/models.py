"""
Typed records for every entity read from or written to the durable store.

Store rows (dict-shaped, as returned by ``psycopg`` with ``dict_row``) are
mapped into these dataclasses at the repository boundary so scoring and
description logic never touches loosely-typed mappings.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from ..spatial.distance import BoundingBox, GeoPoint, polyline_bounding_box, polyline_length_km


class AssociationType(str, Enum):
    """Classification of an event-fault relationship."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    REGIONAL_CONTEXT = "regional_context"


def _opt_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


# -----------------------------
# Events
# -----------------------------

@dataclass(frozen=True)
class Event:
    """A recorded seismic event. Read-only to this engine."""

    id: str
    lat: float
    lon: float
    magnitude: Optional[float] = None
    place: Optional[str] = None
    depth: Optional[float] = None
    time: Optional[int] = None
    """Event time as epoch milliseconds."""

    feature: Optional[Dict[str, Any]] = field(default=None, compare=False, repr=False)
    """Original GeoJSON feature, echoed back in cluster responses."""

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lon=self.lon)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Event":
        return cls(
            id=str(row["id"]),
            lat=float(row["latitude"]),
            lon=float(row["longitude"]),
            magnitude=_opt_float(row.get("magnitude")),
            place=row.get("place"),
            depth=_opt_float(row.get("depth")),
            time=int(row["event_time"]) if row.get("event_time") is not None else None,
        )

    @classmethod
    def from_feature(cls, feature: Mapping[str, Any]) -> "Event":
        """Build an event from a USGS-style GeoJSON feature."""

        coords = feature["geometry"]["coordinates"]
        props = feature.get("properties") or {}
        depth = coords[2] if len(coords) > 2 else None
        time = props.get("time")
        return cls(
            id=str(feature["id"]),
            lat=float(coords[1]),
            lon=float(coords[0]),
            magnitude=_opt_float(props.get("mag")),
            place=props.get("place"),
            depth=_opt_float(depth),
            time=int(time) if time is not None else None,
            feature=dict(feature),
        )

    def to_summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "magnitude": self.magnitude,
            "place": self.place,
            "latitude": self.lat,
            "longitude": self.lon,
            "depth": self.depth,
            "event_time": self.time,
        }

    def to_feature(self) -> Dict[str, Any]:
        if self.feature is not None:
            return self.feature
        coords: List[float] = [self.lon, self.lat]
        if self.depth is not None:
            coords.append(self.depth)
        return {
            "type": "Feature",
            "id": self.id,
            "properties": {"mag": self.magnitude, "place": self.place, "time": self.time},
            "geometry": {"type": "Point", "coordinates": coords},
        }


# -----------------------------
# Faults
# -----------------------------

@dataclass(frozen=True)
class Fault:
    """Active fault reference data."""

    fault_id: str
    display_name: str
    geometry: str
    """GeoJSON LineString/MultiLineString text (``[lon, lat]`` vertices)."""

    bbox: BoundingBox
    movement_description: Optional[str] = None
    activity_level: Optional[str] = None
    speed_description: Optional[str] = None
    depth_description: Optional[str] = None
    hazard_description: Optional[str] = None
    slip_type: Optional[str] = None
    slip_rate: Optional[float] = None
    """Best-estimate net slip rate (mm/yr)."""

    length_km: Optional[float] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Fault":
        return cls(
            fault_id=str(row["fault_id"]),
            display_name=row.get("display_name") or row.get("name") or str(row["fault_id"]),
            geometry=row.get("geom_linestring") or "",
            bbox=BoundingBox(
                min_lat=float(row["bbox_min_lat"]),
                max_lat=float(row["bbox_max_lat"]),
                min_lon=float(row["bbox_min_lon"]),
                max_lon=float(row["bbox_max_lon"]),
            ),
            movement_description=row.get("movement_description"),
            activity_level=row.get("activity_level"),
            speed_description=row.get("speed_description"),
            depth_description=row.get("depth_description"),
            hazard_description=row.get("hazard_description"),
            slip_type=row.get("slip_type"),
            slip_rate=_opt_float(row.get("net_slip_rate_best")),
            length_km=_opt_float(row.get("length_km")),
        )

    @classmethod
    def from_geojson_feature(cls, feature: Mapping[str, Any]) -> "Fault":
        """
        Build a fault from a harmonized active-fault GeoJSON feature.

        The bounding box and length are derived from the trace.

        Raises:
            ValueError: If the feature has no usable polyline geometry
        """
        props = feature.get("properties") or {}
        geometry = feature.get("geometry")
        bbox = polyline_bounding_box(geometry)
        if bbox is None:
            raise ValueError(f"Fault feature {props.get('catalog_id')!r} has no usable trace")

        fault_id = str(feature.get("id") or props.get("fault_id") or props.get("catalog_id"))
        return cls(
            fault_id=fault_id,
            display_name=props.get("display_name") or props.get("name") or fault_id,
            geometry=json.dumps(geometry),
            bbox=bbox,
            movement_description=props.get("movement_description"),
            activity_level=props.get("activity_level"),
            speed_description=props.get("speed_description"),
            depth_description=props.get("depth_description"),
            hazard_description=props.get("hazard_description"),
            slip_type=props.get("slip_type"),
            slip_rate=_opt_float(props.get("net_slip_rate_best")),
            length_km=_opt_float(props.get("length_km")) or round(polyline_length_km(geometry), 3),
        )


# -----------------------------
# Associations
# -----------------------------

@dataclass(frozen=True)
class EventFaultAssociation:
    """Scored relationship keyed by ``(event_id, fault_id)``."""

    event_id: str
    fault_id: str
    distance_km: float
    relevance_score: float
    association_type: AssociationType
    relationship_description: str
    proximity_description: str
    relevance_explanation: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "EventFaultAssociation":
        return cls(
            event_id=str(row["earthquake_id"]),
            fault_id=str(row["fault_id"]),
            distance_km=float(row["distance_km"]),
            relevance_score=float(row["relevance_score"]),
            association_type=AssociationType(row["association_type"]),
            relationship_description=row["relationship_description"],
            proximity_description=row["proximity_description"],
            relevance_explanation=row["relevance_explanation"],
        )


@dataclass(frozen=True)
class NearbyFault:
    """An association joined with the fault attributes shown to callers."""

    association: EventFaultAssociation
    fault: Fault

    def to_dict(self) -> Dict[str, Any]:
        a, f = self.association, self.fault
        return {
            "fault_id": f.fault_id,
            "display_name": f.display_name,
            "distance_km": a.distance_km,
            "proximity_description": a.proximity_description,
            "relationship_description": a.relationship_description,
            "relevance_explanation": a.relevance_explanation,
            "relevance_score": a.relevance_score,
            "association_type": a.association_type.value,
            "movement_description": f.movement_description,
            "activity_level": f.activity_level,
            "speed_description": f.speed_description,
            "depth_description": f.depth_description,
            "hazard_description": f.hazard_description,
            "slip_type": f.slip_type,
            "net_slip_rate_best": f.slip_rate,
            "length_km": f.length_km,
        }


# -----------------------------
# Cluster definitions
# -----------------------------

# Column name -> attribute name for the ClusterDefinitions table.
CLUSTER_DEFINITION_COLUMNS: Dict[str, str] = {
    "id": "id",
    "stable_key": "stable_key",
    "slug": "slug",
    "strongest_quake_id": "strongest_quake_id",
    "earthquake_ids": "earthquake_ids",
    "title": "title",
    "description": "description",
    "location_name": "location_name",
    "max_magnitude": "max_magnitude",
    "mean_magnitude": "mean_magnitude",
    "min_magnitude": "min_magnitude",
    "depth_range": "depth_range",
    "centroid_lat": "centroid_lat",
    "centroid_lon": "centroid_lon",
    "radius_km": "radius_km",
    "start_time": "start_time",
    "end_time": "end_time",
    "duration_hours": "duration_hours",
    "quake_count": "quake_count",
    "significance_score": "significance_score",
    "version": "version",
}

# Attribute name -> camelCase key used on the wire.
_WIRE_KEYS: Dict[str, str] = {
    "id": "id",
    "stable_key": "stableKey",
    "slug": "slug",
    "strongest_quake_id": "strongestQuakeId",
    "earthquake_ids": "earthquakeIds",
    "title": "title",
    "description": "description",
    "location_name": "locationName",
    "max_magnitude": "maxMagnitude",
    "mean_magnitude": "meanMagnitude",
    "min_magnitude": "minMagnitude",
    "depth_range": "depthRange",
    "centroid_lat": "centroidLat",
    "centroid_lon": "centroidLon",
    "radius_km": "radiusKm",
    "start_time": "startTime",
    "end_time": "endTime",
    "duration_hours": "durationHours",
    "quake_count": "quakeCount",
    "significance_score": "significanceScore",
    "version": "version",
}


@dataclass(frozen=True)
class ClusterDefinition:
    """A named, persisted cluster."""

    id: str
    earthquake_ids: List[str]
    strongest_quake_id: str
    slug: Optional[str] = None
    stable_key: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    location_name: Optional[str] = None
    max_magnitude: Optional[float] = None
    mean_magnitude: Optional[float] = None
    min_magnitude: Optional[float] = None
    depth_range: Optional[str] = None
    centroid_lat: Optional[float] = None
    centroid_lon: Optional[float] = None
    radius_km: Optional[float] = None
    start_time: Optional[int] = None
    end_time: Optional[int] = None
    duration_hours: Optional[float] = None
    quake_count: Optional[int] = None
    significance_score: Optional[float] = None
    version: int = 1

    def to_row(self) -> Dict[str, Any]:
        """Row values with the member list serialized as JSON text."""

        row = asdict(self)
        row["earthquake_ids"] = json.dumps(list(self.earthquake_ids))
        return row

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ClusterDefinition":
        values = {attr: row.get(column) for column, attr in CLUSTER_DEFINITION_COLUMNS.items()}
        raw_ids = values["earthquake_ids"]
        if isinstance(raw_ids, (str, bytes)):
            values["earthquake_ids"] = json.loads(raw_ids or "[]")
        elif raw_ids is None:
            values["earthquake_ids"] = []
        else:
            values["earthquake_ids"] = list(raw_ids)
        values["version"] = int(values["version"] or 1)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {_WIRE_KEYS[name]: value for name, value in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClusterDefinition":
        attrs = {attr: data[key] for attr, key in _WIRE_KEYS.items() if key in data}
        attrs["earthquake_ids"] = list(attrs.get("earthquake_ids") or [])
        return cls(**attrs)
