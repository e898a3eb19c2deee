"""Cluster definition registries and the significant-cluster job."""

from .definitions import (
    ClusterDefinitionRegistry,
    TTLClusterDefinitionRegistry,
    build_cluster_definition,
    stable_cluster_key,
    validate_definition_payload,
)
from .significant import SignificantClusterReport, cluster_and_register, register_significant_clusters

__all__ = [
    "ClusterDefinitionRegistry",
    "SignificantClusterReport",
    "TTLClusterDefinitionRegistry",
    "build_cluster_definition",
    "cluster_and_register",
    "register_significant_clusters",
    "stable_cluster_key",
    "validate_definition_payload",
]
