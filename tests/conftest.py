"""
Pytest configuration and shared fixtures for quakescope tests.

This file provides:
- Sample events and faults around a test epicentre (35.0N, 118.0W)
- In-memory stand-ins for the repositories (same method names and ordering rules)
- A controllable clock for the TTL cache
- A real background writer, shut down after each test
"""

import json
from typing import Dict, List, Optional

import pytest

from quakescope.caching import BackgroundWriter, CacheAsideOrchestrator, TTLKeyValueCache
from quakescope.spatial.distance import BoundingBox, polyline_bounding_box
from quakescope.storage.models import ClusterDefinition, Event, EventFaultAssociation, Fault, NearbyFault
from quakescope.tools.config_loader import AppSettings


# ==============================================================================
# In-memory stores
# ==============================================================================

class InMemoryEventRepository:
    def __init__(self, events: List[Event]):
        self.events = {e.id: e for e in events}
        self.calls = 0

    def get(self, event_id: str) -> Optional[Event]:
        self.calls += 1
        return self.events.get(event_id)


class InMemoryFaultRepository:
    def __init__(self, faults: List[Fault]):
        self.faults = {f.fault_id: f for f in faults}
        self.queries: List[BoundingBox] = []

    def find_intersecting(self, bbox: BoundingBox) -> List[Fault]:
        self.queries.append(bbox)
        return [f for f in self.faults.values() if f.bbox.intersects(bbox)]


class InMemoryAssociationRepository:
    """Keyed by (event_id, fault_id); listing follows the SQL ORDER BY."""

    def __init__(self, faults: InMemoryFaultRepository):
        self.faults = faults
        self.rows: Dict[tuple, EventFaultAssociation] = {}
        self.upsert_calls = 0

    def upsert_many(self, associations) -> int:
        self.upsert_calls += 1
        count = 0
        for a in associations:
            self.rows[(a.event_id, a.fault_id)] = a
            count += 1
        return count

    def list_for_event(self, event_id: str, limit: int) -> List[NearbyFault]:
        matches = [a for (eid, _), a in self.rows.items() if eid == event_id]
        matches.sort(key=lambda a: (-a.relevance_score, a.distance_km))
        return [NearbyFault(association=a, fault=self.faults.faults[a.fault_id]) for a in matches[:limit]]


class InMemoryClusterDefinitionRepository:
    """Replace-by-id with a version bump, like the SQL upsert."""

    def __init__(self):
        self.rows: Dict[str, ClusterDefinition] = {}
        self.calls = 0

    def upsert(self, definition: ClusterDefinition) -> ClusterDefinition:
        self.calls += 1
        existing = self.rows.get(definition.id)
        version = existing.version + 1 if existing else 1
        # Round-trip through the row form to exercise the JSON member list.
        row = definition.to_row()
        row["version"] = version
        stored = ClusterDefinition.from_row(row)
        self.rows[stored.id] = stored
        return stored

    def get(self, definition_id: str) -> Optional[ClusterDefinition]:
        self.calls += 1
        return self.rows.get(definition_id)

    def get_by_slug(self, slug: str) -> Optional[ClusterDefinition]:
        self.calls += 1
        return next((d for d in self.rows.values() if d.slug == slug), None)


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ==============================================================================
# Sample Data
# ==============================================================================

EPICENTRE_LAT = 35.0
EPICENTRE_LON = -118.0


def make_fault(fault_id: str, coords, slip_rate=None, length_km=None, **extra) -> Fault:
    geometry = {"type": "LineString", "coordinates": coords}
    return Fault(
        fault_id=fault_id,
        display_name=extra.pop("display_name", f"{fault_id.title()} Fault"),
        geometry=json.dumps(geometry),
        bbox=polyline_bounding_box(geometry),
        slip_rate=slip_rate,
        length_km=length_km,
        **extra,
    )


def make_feature(event_id: str, lat: float, lon: float, mag=None, time=1_700_000_000_000, place=None, depth=None):
    coords = [lon, lat] if depth is None else [lon, lat, depth]
    return {
        "type": "Feature",
        "id": event_id,
        "properties": {"mag": mag, "time": time, "place": place},
        "geometry": {"type": "Point", "coordinates": coords},
    }


@pytest.fixture
def epicentre_event() -> Event:
    return Event(
        id="ci1001",
        lat=EPICENTRE_LAT,
        lon=EPICENTRE_LON,
        magnitude=4.2,
        place="10 km N of Ridgecrest, CA",
        depth=8.5,
        time=1_700_000_000_000,
    )


@pytest.fixture
def sample_faults() -> List[Fault]:
    """
    Faults at known distances from the epicentre:

    - on:      passes through the epicentre (~0 km)
    - near:    0.09 deg north (~10 km)
    - far:     0.54 deg north (~60 km)
    - corner:  inside the search box but ~134 km away
    - distant: ~200 km north, outside the search box
    - broken:  unparsable geometry inside the search box
    """
    return [
        make_fault(
            "on",
            [[-118.1, 35.0], [-117.9, 35.0]],
            slip_rate=15.0,
            length_km=100.0,
            slip_type="Strike-slip",
            activity_level="Very Active",
            movement_description="Slides side-to-side",
        ),
        make_fault(
            "near",
            [[-118.1, 35.09], [-117.9, 35.09]],
            slip_rate=30.0,
            length_km=50.0,
            slip_type="Reverse",
            activity_level="Active",
        ),
        make_fault("far", [[-118.1, 35.54], [-117.9, 35.54]], slip_rate=2.0, length_km=20.0, slip_type="Normal"),
        make_fault("corner", [[-116.95, 35.85], [-116.92, 35.88]], slip_rate=1.0, length_km=5.0),
        make_fault("distant", [[-118.1, 36.8], [-117.9, 36.8]], slip_rate=40.0, length_km=300.0),
        Fault(
            fault_id="broken",
            display_name="Broken Fault",
            geometry="not-json",
            bbox=BoundingBox(min_lat=34.9, max_lat=35.1, min_lon=-118.1, max_lon=-117.9),
            slip_rate=20.0,
        ),
    ]


# ==============================================================================
# Store and service fixtures
# ==============================================================================

@pytest.fixture
def event_repo(epicentre_event) -> InMemoryEventRepository:
    return InMemoryEventRepository([epicentre_event])


@pytest.fixture
def fault_repo(sample_faults) -> InMemoryFaultRepository:
    return InMemoryFaultRepository(sample_faults)


@pytest.fixture
def association_repo(fault_repo) -> InMemoryAssociationRepository:
    return InMemoryAssociationRepository(fault_repo)


@pytest.fixture
def definition_repo() -> InMemoryClusterDefinitionRepository:
    return InMemoryClusterDefinitionRepository()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> TTLKeyValueCache:
    return TTLKeyValueCache(maxsize=128, timer=clock)


@pytest.fixture
def writer():
    writer = BackgroundWriter(max_workers=2)
    yield writer
    writer.shutdown()


@pytest.fixture
def orchestrator(cache, writer) -> CacheAsideOrchestrator:
    return CacheAsideOrchestrator(cache, writer)


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings()
