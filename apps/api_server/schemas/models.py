"""Pydantic models for the QuakeScope API server."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field


class CalculateClustersRequest(BaseModel):
    """Batch of GeoJSON event features plus clustering parameters."""

    earthquakes: List[Any] = Field(..., description="GeoJSON Feature objects")
    max_distance_km: float = Field(..., alias="maxDistanceKm", description="Seed-to-member linking distance")
    min_quakes: int = Field(..., alias="minQuakes", description="Minimum members per cluster")

    model_config = {"populate_by_name": True}


class ClusterDefinitionPayload(BaseModel):
    """
    Registration body. Required fields are checked by the registry so that a
    missing id is reported the same way for every caller.

    Strict mode: numeric fields take JSON numbers only, never numeric strings.
    """

    cluster_id: Optional[str] = Field(
        default=None, alias="clusterId", validation_alias=AliasChoices("clusterId", "id")
    )
    earthquake_ids: Optional[List[str]] = Field(default=None, alias="earthquakeIds")
    strongest_quake_id: Optional[str] = Field(default=None, alias="strongestQuakeId")
    slug: Optional[str] = None
    stable_key: Optional[str] = Field(default=None, alias="stableKey")
    title: Optional[str] = None
    description: Optional[str] = None
    location_name: Optional[str] = Field(default=None, alias="locationName")
    max_magnitude: Optional[float] = Field(default=None, alias="maxMagnitude")
    mean_magnitude: Optional[float] = Field(default=None, alias="meanMagnitude")
    min_magnitude: Optional[float] = Field(default=None, alias="minMagnitude")
    depth_range: Optional[str] = Field(default=None, alias="depthRange")
    centroid_lat: Optional[float] = Field(default=None, alias="centroidLat")
    centroid_lon: Optional[float] = Field(default=None, alias="centroidLon")
    radius_km: Optional[float] = Field(default=None, alias="radiusKm")
    start_time: Optional[int] = Field(default=None, alias="startTime")
    end_time: Optional[int] = Field(default=None, alias="endTime")
    duration_hours: Optional[float] = Field(default=None, alias="durationHours")
    quake_count: Optional[int] = Field(default=None, alias="quakeCount")
    significance_score: Optional[float] = Field(default=None, alias="significanceScore")

    model_config = {"populate_by_name": True, "strict": True}

    def to_registration(self) -> Dict[str, Any]:
        """camelCase mapping with only the fields the caller sent."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class ClusterDefinitionAck(BaseModel):
    message: str
    definition: Dict[str, Any]
