"""
Named cluster definitions: validation, building and storage.

Two registries share one interface:

- :class:`ClusterDefinitionRegistry` persists to the relational store,
  replaces by id and bumps ``version`` on every replacement.
- :class:`TTLClusterDefinitionRegistry` keeps definitions in the ephemeral
  key-value cache for a fixed lifetime (six hours by default).
"""

from __future__ import annotations

import json
import logging
import math
import re
import uuid
from typing import Any, Mapping, Optional

from ..caching.store import KeyValueCache
from ..errors import CacheError, NotFoundError, UpstreamComputationError, ValidationError
from ..spatial.clustering import ClusterSummary
from ..storage.models import ClusterDefinition
from ..storage.repositories import ClusterDefinitionRepository


logger = logging.getLogger(__name__)


STABLE_KEY_VERSION = "v1"
SIX_HOURS_MS = 6 * 60 * 60 * 1000
DEFAULT_DEFINITION_TTL_SECONDS = 21600

_MISSING_FIELDS = "Invalid cluster data provided. Missing required fields."

_NUMERIC_FIELDS = (
    "maxMagnitude",
    "meanMagnitude",
    "minMagnitude",
    "centroidLat",
    "centroidLon",
    "radiusKm",
    "durationHours",
    "significanceScore",
)
_INTEGER_FIELDS = ("startTime", "endTime", "quakeCount")
_TEXT_FIELDS = ("slug", "stableKey", "title", "description", "locationName", "depthRange")


# -----------------------------
# Validation
# -----------------------------

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate_definition_payload(data: Any) -> ClusterDefinition:
    """
    Check a registration payload and turn it into a :class:`ClusterDefinition`.

    Required: ``clusterId`` (``id`` is accepted too), a non-empty
    ``earthquakeIds`` list of strings and ``strongestQuakeId``. Optional rich
    fields are type-checked when present.

    Raises:
        ValidationError: On any missing or mistyped field
    """
    if not isinstance(data, Mapping):
        raise ValidationError(_MISSING_FIELDS)

    cluster_id = data.get("clusterId", data.get("id"))
    earthquake_ids = data.get("earthquakeIds")
    strongest_id = data.get("strongestQuakeId")

    if cluster_id in (None, "") or earthquake_ids is None or strongest_id in (None, ""):
        raise ValidationError(_MISSING_FIELDS)
    if not isinstance(earthquake_ids, list):
        raise ValidationError("Invalid cluster data: earthquakeIds must be an array.")
    if not earthquake_ids:
        raise ValidationError("Invalid cluster data: earthquakeIds must not be empty.")
    if not all(isinstance(i, str) and i for i in earthquake_ids):
        raise ValidationError("Invalid cluster data: earthquakeIds must contain only non-empty strings.")
    if not isinstance(cluster_id, str) or not isinstance(strongest_id, str):
        raise ValidationError("Invalid cluster data: clusterId and strongestQuakeId must be strings.")

    for key in _NUMERIC_FIELDS:
        if data.get(key) is not None and not _is_number(data[key]):
            raise ValidationError(f"Invalid cluster data: {key} must be a number.")
    for key in _INTEGER_FIELDS:
        value = data.get(key)
        if value is not None and (not _is_number(value) or int(value) != value):
            raise ValidationError(f"Invalid cluster data: {key} must be an integer.")
    for key in _TEXT_FIELDS:
        if data.get(key) is not None and not isinstance(data[key], str):
            raise ValidationError(f"Invalid cluster data: {key} must be a string.")

    fields = {k: v for k, v in data.items() if k not in ("clusterId", "version")}
    fields["id"] = cluster_id
    for key in _INTEGER_FIELDS:
        if fields.get(key) is not None:
            fields[key] = int(fields[key])
    return ClusterDefinition.from_dict(fields)


def _require_identifier(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Missing {name} query parameter.")
    return value


# -----------------------------
# Building definitions from clusters
# -----------------------------

def _slugify(text: str) -> str:
    text = re.sub(r"[^a-z0-9\s-]", "", text.lower()).strip()
    text = re.sub(r"\s+", "-", text)
    return re.sub(r"-+", "-", text)


def stable_cluster_key(summary: ClusterSummary) -> str:
    """
    Key that stays the same when a cluster is recomputed with a few more or
    fewer members: general place, six-hour bucket of the start time, and the
    strongest event's coordinates at 0.1 degree.
    """
    strongest = summary.strongest
    location = "unknown-location"
    if strongest.place:
        general_place = strongest.place.split(" of ")[-1]
        location = _slugify(general_place)[:30] or "unknown-location"

    bucket = (summary.start_time or 0) // SIX_HOURS_MS
    geo = f"{strongest.lat:.1f}-{strongest.lon:.1f}"
    return f"{STABLE_KEY_VERSION}_{location}_{bucket}_{geo}"


def cluster_slug(quake_count: int, location_name: str, max_magnitude: Optional[float], stable_key: str) -> str:
    location = _slugify(location_name or "unknown-location")[:30].strip("-")
    parts = stable_key.split("_")
    if len(parts) >= 4:
        time_part, geo_part = parts[2], parts[3]
    else:
        time_part, geo_part = "0", "0"
    geo_part = re.sub(r"[^a-z0-9-]", "", geo_part.replace(".", "d"))[:15]
    magnitude = f"{max_magnitude:.1f}" if max_magnitude is not None else "unknown"
    return f"{quake_count}-quakes-near-{location}-m{magnitude}-{time_part}-{geo_part}"


def cluster_title(quake_count: int, location_name: str, max_magnitude: float) -> str:
    return f"Cluster: {quake_count} events near {location_name or 'Unknown Location'}, max M{max_magnitude:.1f}"


def cluster_description(quake_count: int, location_name: str, max_magnitude: float, duration_hours: float) -> str:
    duration = f"approx {duration_hours:.1f} hours" if duration_hours > 0 else "a short period"
    return (
        f"A cluster of {quake_count} earthquakes occurred near {location_name}. "
        f"Strongest: M{max_magnitude:.1f}. Duration: {duration}."
    )


def significance_score(max_magnitude: Optional[float], quake_count: int) -> float:
    if not quake_count or max_magnitude is None:
        return 0.0
    return max_magnitude * math.log10(quake_count)


def definition_id_for(stable_key: str) -> str:
    """Deterministic id so re-registering the same cluster replaces it."""

    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"quakescope:cluster:{stable_key}"))


def build_cluster_definition(summary: ClusterSummary) -> ClusterDefinition:
    """Derive a full definition (ids, slug, text, statistics) from a cluster summary."""

    stable_key = stable_cluster_key(summary)
    max_magnitude = summary.max_magnitude if summary.max_magnitude is not None else 0.0
    return ClusterDefinition(
        id=definition_id_for(stable_key),
        earthquake_ids=summary.event_ids,
        strongest_quake_id=summary.strongest.id,
        slug=cluster_slug(summary.quake_count, summary.location_name, summary.max_magnitude, stable_key),
        stable_key=stable_key,
        title=cluster_title(summary.quake_count, summary.location_name, max_magnitude),
        description=cluster_description(
            summary.quake_count, summary.location_name, max_magnitude, summary.duration_hours
        ),
        location_name=summary.location_name,
        max_magnitude=summary.max_magnitude,
        mean_magnitude=summary.mean_magnitude,
        min_magnitude=summary.min_magnitude,
        depth_range=summary.depth_range,
        centroid_lat=summary.centroid_lat,
        centroid_lon=summary.centroid_lon,
        radius_km=summary.radius_km,
        start_time=summary.start_time,
        end_time=summary.end_time,
        duration_hours=summary.duration_hours,
        quake_count=summary.quake_count,
        significance_score=significance_score(summary.max_magnitude, summary.quake_count),
    )


# -----------------------------
# Registries
# -----------------------------

class ClusterDefinitionRegistry:
    """Durable registry over the relational store."""

    def __init__(self, repository: ClusterDefinitionRepository):
        self.repository = repository

    def register(self, data: Any) -> ClusterDefinition:
        """
        Validate and upsert a registration payload.

        Raises:
            ValidationError: Before any store access when the payload is invalid
            UpstreamComputationError: Store failure
        """
        return self.store(validate_definition_payload(data))

    def store(self, definition: ClusterDefinition) -> ClusterDefinition:
        stored = self.repository.upsert(definition)
        logger.info("Registered cluster definition %s (version %d)", stored.id, stored.version)
        return stored

    def retrieve(self, definition_id: Any) -> ClusterDefinition:
        """
        Raises:
            ValidationError: Missing id
            NotFoundError: Unknown id
        """
        definition_id = _require_identifier(definition_id, "id")
        definition = self.repository.get(definition_id)
        if definition is None:
            raise NotFoundError(f"Cluster definition for {definition_id} not found.")
        return definition

    def retrieve_by_slug(self, slug: Any) -> ClusterDefinition:
        slug = _require_identifier(slug, "slug")
        definition = self.repository.get_by_slug(slug)
        if definition is None:
            raise NotFoundError(f"Cluster definition with slug {slug} not found.")
        return definition


class TTLClusterDefinitionRegistry:
    """
    Lightweight registry that keeps definitions in the key-value cache.

    Entries expire after ``ttl_seconds``. Here the cache is the store of
    record, so cache failures are surfaced as upstream errors.
    """

    def __init__(self, cache: KeyValueCache, ttl_seconds: float = DEFAULT_DEFINITION_TTL_SECONDS):
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _key(definition_id: str) -> str:
        return f"cluster_definition_{definition_id}"

    @staticmethod
    def _slug_key(slug: str) -> str:
        return f"cluster_definition_slug_{slug}"

    def _load(self, key: str) -> Optional[str]:
        try:
            return self.cache.get(key)
        except CacheError as exc:
            logger.error("Cluster definition read failed for %s: %s", key, exc, exc_info=True)
            raise UpstreamComputationError("Failed to read cluster definition") from exc

    def _save(self, key: str, value: str) -> None:
        try:
            self.cache.put(key, value, self.ttl_seconds)
        except CacheError as exc:
            logger.error("Cluster definition write failed for %s: %s", key, exc, exc_info=True)
            raise UpstreamComputationError("Failed to store cluster definition") from exc

    def _drop(self, key: str) -> None:
        try:
            self.cache.delete(key)
        except CacheError as exc:
            logger.error("Cluster definition delete failed for %s: %s", key, exc, exc_info=True)
            raise UpstreamComputationError("Failed to store cluster definition") from exc

    def _get(self, definition_id: str) -> Optional[ClusterDefinition]:
        raw = self._load(self._key(definition_id))
        return ClusterDefinition.from_dict(json.loads(raw)) if raw else None

    def register(self, data: Any) -> ClusterDefinition:
        return self.store(validate_definition_payload(data))

    def store(self, definition: ClusterDefinition) -> ClusterDefinition:
        existing = self._get(definition.id)
        version = existing.version + 1 if existing else 1
        stored = ClusterDefinition.from_dict({**definition.to_dict(), "version": version})

        self._save(self._key(stored.id), json.dumps(stored.to_dict()))
        if stored.slug:
            self._save(self._slug_key(stored.slug), stored.id)
        if existing and existing.slug and existing.slug != stored.slug:
            self._drop(self._slug_key(existing.slug))
        logger.info("Registered cluster definition %s for %ss", stored.id, self.ttl_seconds)
        return stored

    def retrieve(self, definition_id: Any) -> ClusterDefinition:
        definition_id = _require_identifier(definition_id, "id")
        definition = self._get(definition_id)
        if definition is None:
            raise NotFoundError(f"Cluster definition for {definition_id} not found.")
        return definition

    def retrieve_by_slug(self, slug: Any) -> ClusterDefinition:
        slug = _require_identifier(slug, "slug")
        definition_id = self._load(self._slug_key(slug))
        definition = self._get(definition_id) if definition_id else None
        # A pointer can outlive a later re-registration under another slug.
        if definition is None or definition.slug != slug:
            raise NotFoundError(f"Cluster definition with slug {slug} not found.")
        return definition
