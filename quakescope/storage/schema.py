"""Durable store schema and initialization."""

import logging

from .database import Database


logger = logging.getLogger(__name__)


SCHEMA_SQL = """
-- Seismic events (written by the upstream feed ingester)
CREATE TABLE IF NOT EXISTS earthquake_events (
    id TEXT PRIMARY KEY,
    event_time BIGINT,
    latitude DOUBLE PRECISION NOT NULL,
    longitude DOUBLE PRECISION NOT NULL,
    depth DOUBLE PRECISION,
    magnitude DOUBLE PRECISION,
    place TEXT,
    retrieved_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Active fault reference data
CREATE TABLE IF NOT EXISTS active_faults (
    fault_id TEXT PRIMARY KEY,
    name TEXT,
    display_name TEXT,
    movement_description TEXT,
    activity_level TEXT,
    speed_description TEXT,
    depth_description TEXT,
    hazard_description TEXT,
    slip_type TEXT,
    net_slip_rate_best DOUBLE PRECISION,
    length_km DOUBLE PRECISION,
    geom_linestring TEXT NOT NULL,
    bbox_min_lat DOUBLE PRECISION NOT NULL,
    bbox_max_lat DOUBLE PRECISION NOT NULL,
    bbox_min_lon DOUBLE PRECISION NOT NULL,
    bbox_max_lon DOUBLE PRECISION NOT NULL,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Scored event/fault relationships
CREATE TABLE IF NOT EXISTS earthquake_fault_associations (
    earthquake_id TEXT NOT NULL,
    fault_id TEXT NOT NULL REFERENCES active_faults(fault_id),
    distance_km DOUBLE PRECISION NOT NULL CHECK (distance_km >= 0),
    relationship_description TEXT NOT NULL,
    proximity_description TEXT NOT NULL,
    relevance_explanation TEXT NOT NULL,
    relevance_score DOUBLE PRECISION NOT NULL CHECK (relevance_score >= 0 AND relevance_score <= 1),
    association_type TEXT NOT NULL CHECK (association_type IN ('primary', 'secondary', 'regional_context')),
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (earthquake_id, fault_id)
);

-- Named cluster definitions
CREATE TABLE IF NOT EXISTS cluster_definitions (
    id TEXT PRIMARY KEY,
    stable_key TEXT UNIQUE,
    slug TEXT UNIQUE,
    strongest_quake_id TEXT NOT NULL,
    earthquake_ids TEXT NOT NULL,
    title TEXT,
    description TEXT,
    location_name TEXT,
    max_magnitude DOUBLE PRECISION,
    mean_magnitude DOUBLE PRECISION,
    min_magnitude DOUBLE PRECISION,
    depth_range TEXT,
    centroid_lat DOUBLE PRECISION,
    centroid_lon DOUBLE PRECISION,
    radius_km DOUBLE PRECISION,
    start_time BIGINT,
    end_time BIGINT,
    duration_hours DOUBLE PRECISION,
    quake_count INTEGER,
    significance_score DOUBLE PRECISION,
    version INTEGER NOT NULL DEFAULT 1,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_earthquake_events_event_time ON earthquake_events(event_time);
CREATE INDEX IF NOT EXISTS idx_active_faults_bbox
    ON active_faults(bbox_min_lat, bbox_max_lat, bbox_min_lon, bbox_max_lon);
CREATE INDEX IF NOT EXISTS idx_associations_ranking
    ON earthquake_fault_associations(earthquake_id, relevance_score DESC, distance_km ASC);
CREATE INDEX IF NOT EXISTS idx_cluster_definitions_start_time ON cluster_definitions(start_time);
CREATE INDEX IF NOT EXISTS idx_cluster_definitions_significance ON cluster_definitions(significance_score);
"""


def init_schema(db: Database) -> None:
    """Create tables and indexes if they do not exist yet."""
    db.execute(SCHEMA_SQL)
    logger.info("Database schema initialized")
