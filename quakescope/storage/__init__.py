"""Durable relational store: typed records, schema and repositories."""

from .database import Database, DatabaseConfig
from .models import (
    AssociationType,
    ClusterDefinition,
    Event,
    EventFaultAssociation,
    Fault,
    NearbyFault,
)
from .repositories import (
    AssociationRepository,
    ClusterDefinitionRepository,
    EventRepository,
    FaultRepository,
)
from .schema import init_schema

__all__ = [
    "AssociationRepository",
    "AssociationType",
    "ClusterDefinition",
    "ClusterDefinitionRepository",
    "Database",
    "DatabaseConfig",
    "Event",
    "EventFaultAssociation",
    "EventRepository",
    "Fault",
    "FaultRepository",
    "NearbyFault",
    "init_schema",
]
