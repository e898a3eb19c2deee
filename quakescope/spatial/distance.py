"""
Great-circle and point-to-polyline distance helpers.

All distances are in kilometres on a spherical Earth (R = 6371 km).
Fault traces arrive as GeoJSON text with ``[lon, lat]`` vertex order; the
segment projection is done in a locally flattened lon/lat plane and the
projected point is then measured with the haversine formula.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, replace
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np


logger = logging.getLogger(__name__)


EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE_LAT = 111.0

# Returned when a fault geometry cannot be measured.
INFINITE_DISTANCE = math.inf


@dataclass(frozen=True)
class GeoPoint:
    """Latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


@dataclass(frozen=True)
class BoundingBox:
    """Rectangular lat/lon range used for coarse spatial filtering."""

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def intersects(self, other: "BoundingBox") -> bool:
        return (
            self.min_lat <= other.max_lat
            and self.max_lat >= other.min_lat
            and self.min_lon <= other.max_lon
            and self.max_lon >= other.min_lon
        )

    def split_antimeridian(self) -> List["BoundingBox"]:
        """
        Equivalent boxes with longitudes inside [-180, 180].

        A box running past either side of the antimeridian is cut into an
        eastern and a western part; a box spanning the whole globe collapses
        to a single full-width range.
        """
        if self.max_lon - self.min_lon >= 360.0:
            return [replace(self, min_lon=-180.0, max_lon=180.0)]
        if self.min_lon < -180.0:
            return [replace(self, min_lon=-180.0), replace(self, min_lon=self.min_lon + 360.0, max_lon=180.0)]
        if self.max_lon > 180.0:
            return [replace(self, max_lon=180.0), replace(self, min_lon=-180.0, max_lon=self.max_lon - 360.0)]
        return [self]


def great_circle_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Haversine distance between two coordinates.

    Args:
        lat1, lon1: First point in decimal degrees
        lat2, lon2: Second point in decimal degrees

    Returns:
        Distance in kilometres (0.0 for identical points)
    """
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push ``a`` a hair outside [0, 1] for antipodal points.
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def _haversine_vec(lat1: float, lon1: float, lat2: np.ndarray, lon2: np.ndarray) -> np.ndarray:
    phi1 = np.radians(lat1)
    phi2 = np.radians(lat2)
    d_phi = np.radians(lat2 - lat1)
    d_lambda = np.radians(lon2 - lon1)
    a = np.sin(d_phi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2) ** 2
    a = np.clip(a, 0.0, 1.0)
    return EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def point_to_segment_distance(point: GeoPoint, segment_start: GeoPoint, segment_end: GeoPoint) -> float:
    """
    Distance from ``point`` to the closest point on a segment.

    The projection parameter is clamped to [0, 1] so points beyond either end
    measure against the nearer endpoint. Zero-length segments fall back to
    the direct point distance.
    """
    dx = segment_end.lon - segment_start.lon
    dy = segment_end.lat - segment_start.lat
    length_sq = dx * dx + dy * dy

    if length_sq == 0:
        return great_circle_distance(point.lat, point.lon, segment_start.lat, segment_start.lon)

    t = ((point.lon - segment_start.lon) * dx + (point.lat - segment_start.lat) * dy) / length_sq
    t = min(1.0, max(0.0, t))

    closest_lon = segment_start.lon + t * dx
    closest_lat = segment_start.lat + t * dy
    return great_circle_distance(point.lat, point.lon, closest_lat, closest_lon)


def _polyline_distance(point: GeoPoint, vertices: np.ndarray) -> float:
    """Vectorised minimum over every consecutive vertex pair (``[lon, lat]`` rows)."""

    starts = vertices[:-1]
    ends = vertices[1:]
    dx = ends[:, 0] - starts[:, 0]
    dy = ends[:, 1] - starts[:, 1]
    length_sq = dx * dx + dy * dy

    with np.errstate(divide="ignore", invalid="ignore"):
        t = ((point.lon - starts[:, 0]) * dx + (point.lat - starts[:, 1]) * dy) / length_sq
    # Degenerate segments measure against their start vertex.
    t = np.where(length_sq == 0, 0.0, np.clip(t, 0.0, 1.0))

    closest_lon = starts[:, 0] + t * dx
    closest_lat = starts[:, 1] + t * dy
    distances = _haversine_vec(point.lat, point.lon, closest_lat, closest_lon)
    return float(distances.min())


def parse_fault_geometry(geometry: Any) -> List[np.ndarray]:
    """
    Parse GeoJSON LineString/MultiLineString text (or dict) into vertex arrays.

    Raises:
        ValueError: If the geometry cannot be interpreted as a polyline
    """
    if isinstance(geometry, (str, bytes)):
        geometry = json.loads(geometry)

    if isinstance(geometry, dict):
        geom_type = geometry.get("type", "LineString")
        coordinates = geometry.get("coordinates")
    else:
        geom_type = "LineString"
        coordinates = geometry

    if coordinates is None:
        raise ValueError("Fault geometry has no coordinates")

    parts: Sequence[Any]
    if geom_type == "MultiLineString":
        parts = coordinates
    elif geom_type == "LineString":
        parts = [coordinates]
    else:
        raise ValueError(f"Unsupported fault geometry type: {geom_type}")

    polylines: List[np.ndarray] = []
    for part in parts:
        vertices = np.asarray([(float(c[0]), float(c[1])) for c in part], dtype=float)
        if vertices.ndim != 2 or len(vertices) < 2:
            raise ValueError("Fault trace needs at least two vertices")
        if not np.all(np.isfinite(vertices)):
            raise ValueError("Fault trace contains non-finite coordinates")
        polylines.append(vertices)

    if not polylines:
        raise ValueError("Fault geometry is empty")
    return polylines


def distance_to_fault(point: GeoPoint, fault_geometry: Any) -> float:
    """
    Minimum distance from ``point`` to a fault trace.

    Malformed geometry never raises: it is logged and measured as
    :data:`INFINITE_DISTANCE` so the fault simply falls outside any radius.
    """
    try:
        polylines = parse_fault_geometry(fault_geometry)
    except (ValueError, TypeError, IndexError, KeyError) as exc:
        logger.warning("Unable to measure distance to fault geometry: %s", exc)
        return INFINITE_DISTANCE

    return min(_polyline_distance(point, vertices) for vertices in polylines)


def bounding_box_around(center: GeoPoint, radius_km: float) -> BoundingBox:
    """
    Lat/lon box enclosing a circle of ``radius_km`` around ``center``.

    One degree of latitude is approximated as 111 km; longitude degrees are
    widened by ``1 / cos(lat)``. Near the poles the longitude span is capped
    to the full globe.

    Longitudes are not wrapped here; use :meth:`BoundingBox.split_antimeridian`
    before querying stored boxes.
    """
    lat_delta = radius_km / KM_PER_DEGREE_LAT
    cos_lat = math.cos(math.radians(center.lat))
    if cos_lat <= 1e-9:
        lon_delta = 180.0
    else:
        lon_delta = min(180.0, radius_km / (KM_PER_DEGREE_LAT * cos_lat))

    return BoundingBox(
        min_lat=center.lat - lat_delta,
        max_lat=center.lat + lat_delta,
        min_lon=center.lon - lon_delta,
        max_lon=center.lon + lon_delta,
    )


def polyline_bounding_box(fault_geometry: Any) -> Optional[BoundingBox]:
    """Bounding box of a fault trace, or ``None`` when the geometry is unusable."""

    try:
        polylines = parse_fault_geometry(fault_geometry)
    except (ValueError, TypeError, IndexError, KeyError):
        return None

    stacked = np.vstack(polylines)
    return BoundingBox(
        min_lat=float(stacked[:, 1].min()),
        max_lat=float(stacked[:, 1].max()),
        min_lon=float(stacked[:, 0].min()),
        max_lon=float(stacked[:, 0].max()),
    )


def polyline_length_km(fault_geometry: Any) -> float:
    """Sum of great-circle segment lengths along a fault trace."""

    polylines = parse_fault_geometry(fault_geometry)
    total = 0.0
    for vertices in polylines:
        for (lon1, lat1), (lon2, lat2) in zip(vertices[:-1], vertices[1:]):
            total += great_circle_distance(lat1, lon1, lat2, lon2)
    return total


def centroid(points: Sequence[Tuple[float, float]]) -> GeoPoint:
    """Arithmetic mean of ``(lat, lon)`` pairs."""

    arr = np.asarray(points, dtype=float)
    return GeoPoint(lat=float(arr[:, 0].mean()), lon=float(arr[:, 1].mean()))
