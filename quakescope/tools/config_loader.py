"""
Configuration loader for deployment profiles and environment variables.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..scoring.weights import RelevanceWeights, weights_from_mapping


class ConfigLoader:
    """Load and manage configuration from YAML files and environment."""

    CONFIG_DIR = Path(__file__).parent.parent.parent / "configs"
    DEFAULT_PROFILE = "default"

    @classmethod
    def load_profile(cls, profile_name: str = DEFAULT_PROFILE) -> Dict[str, Any]:
        """
        Load a deployment profile.

        Args:
            profile_name: Name of the profile (file stem under ``configs/``)

        Returns:
            Dictionary with configuration values

        Raises:
            FileNotFoundError: If profile doesn't exist
        """
        profile_path = cls.CONFIG_DIR / f"{profile_name}.yaml"

        if not profile_path.exists():
            available = sorted(f.stem for f in cls.CONFIG_DIR.glob("*.yaml"))
            raise FileNotFoundError(
                f"Profile '{profile_name}' not found. Available profiles: {', '.join(available)}"
            )

        with open(profile_path, "r") as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def get_profile_from_env(cls) -> Optional[str]:
        """Get profile name from QUAKESCOPE_PROFILE environment variable."""
        return os.getenv("QUAKESCOPE_PROFILE")

    @classmethod
    def load_default_or_env_profile(cls) -> Dict[str, Any]:
        """
        Load the profile named by the environment, or the default one.

        ``DATABASE_URL`` overrides ``database.url`` when set.
        """
        config = cls.load_profile(cls.get_profile_from_env() or cls.DEFAULT_PROFILE)
        database_url = os.getenv("DATABASE_URL")
        if database_url:
            config.setdefault("database", {})["url"] = database_url
        return config


@dataclass
class AppSettings:
    """Typed view of a profile."""

    fault_search_radius_km: float = 100.0
    fault_result_limit: int = 5
    fault_context_ttl_seconds: int = 7200
    cluster_ttl_seconds: int = 3600
    cluster_definition_ttl_seconds: int = 21600
    cache_max_entries: int = 4096
    writer_workers: int = 2
    cluster_max_distance_km: float = 100.0
    cluster_min_quakes: int = 3
    significant_min_magnitude: float = 2.5
    register_significant_clusters: bool = True
    definition_registry: str = "durable"
    log_level: str = "INFO"
    database: Dict[str, Any] = field(default_factory=dict)
    weights: RelevanceWeights = field(default_factory=RelevanceWeights)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "AppSettings":
        faults = config.get("fault_context", {}) or {}
        cache = config.get("cache", {}) or {}
        clustering = config.get("clustering", {}) or {}
        defaults = cls()
        return cls(
            fault_search_radius_km=float(faults.get("radius_km", defaults.fault_search_radius_km)),
            fault_result_limit=int(faults.get("limit", defaults.fault_result_limit)),
            fault_context_ttl_seconds=int(cache.get("fault_context_ttl_s", defaults.fault_context_ttl_seconds)),
            cluster_ttl_seconds=int(cache.get("cluster_ttl_s", defaults.cluster_ttl_seconds)),
            cluster_definition_ttl_seconds=int(
                cache.get("cluster_definition_ttl_s", defaults.cluster_definition_ttl_seconds)
            ),
            cache_max_entries=int(cache.get("max_entries", defaults.cache_max_entries)),
            writer_workers=int(cache.get("writer_workers", defaults.writer_workers)),
            cluster_max_distance_km=float(clustering.get("max_distance_km", defaults.cluster_max_distance_km)),
            cluster_min_quakes=int(clustering.get("min_quakes", defaults.cluster_min_quakes)),
            significant_min_magnitude=float(
                clustering.get("significant_min_magnitude", defaults.significant_min_magnitude)
            ),
            register_significant_clusters=bool(
                clustering.get("register_significant", defaults.register_significant_clusters)
            ),
            definition_registry=str(clustering.get("definition_registry", defaults.definition_registry)),
            log_level=str((config.get("logging") or {}).get("level", defaults.log_level)),
            database=dict(config.get("database") or {}),
            weights=weights_from_mapping(config.get("scoring"), name="profile"),
        )


def get_config() -> Dict[str, Any]:
    """Convenience function to get current configuration."""
    return ConfigLoader.load_default_or_env_profile()


def get_settings() -> AppSettings:
    """Typed settings for the current profile."""
    return AppSettings.from_config(get_config())
