"""
quakescope.spatial: great-circle geometry and greedy event clustering.

The distance kernel is re-exported here; clustering lives in
:mod:`quakescope.spatial.clustering` because it depends on the storage
records, which in turn depend on this geometry.
"""

from .distance import (
    EARTH_RADIUS_KM,
    INFINITE_DISTANCE,
    BoundingBox,
    GeoPoint,
    bounding_box_around,
    distance_to_fault,
    great_circle_distance,
    point_to_segment_distance,
)

__all__ = [
    "EARTH_RADIUS_KM",
    "INFINITE_DISTANCE",
    "BoundingBox",
    "GeoPoint",
    "bounding_box_around",
    "distance_to_fault",
    "great_circle_distance",
    "point_to_segment_distance",
]
