"""
Tests for profile loading and typed settings (quakescope/tools/config_loader.py)
"""

import pytest

from quakescope.scoring import DEFAULT_WEIGHTS
from quakescope.tools import AppSettings, ConfigLoader, get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("QUAKESCOPE_PROFILE", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)


class TestConfigLoader:
    """Test YAML profile loading."""

    def test_load_default_profile(self):
        config = ConfigLoader.load_profile("default")
        assert config["fault_context"]["radius_km"] == 100
        assert config["cache"]["fault_context_ttl_s"] == 7200
        assert config["cache"]["cluster_ttl_s"] == 3600

    def test_missing_profile(self):
        with pytest.raises(FileNotFoundError) as excinfo:
            ConfigLoader.load_profile("staging-that-does-not-exist")
        assert "Available profiles" in str(excinfo.value)
        assert "default" in str(excinfo.value)

    def test_profile_from_env(self, monkeypatch):
        monkeypatch.setenv("QUAKESCOPE_PROFILE", "development")
        config = ConfigLoader.load_default_or_env_profile()
        assert config["logging"]["level"] == "DEBUG"

    def test_database_url_override(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://ci:ci@db:5432/ci")
        config = ConfigLoader.load_default_or_env_profile()
        assert config["database"]["url"] == "postgresql://ci:ci@db:5432/ci"


class TestAppSettings:
    """Test the typed view over a profile."""

    def test_empty_config_uses_defaults(self):
        settings = AppSettings.from_config({})
        assert settings.fault_search_radius_km == 100.0
        assert settings.fault_result_limit == 5
        assert settings.fault_context_ttl_seconds == 7200
        assert settings.cluster_ttl_seconds == 3600
        assert settings.cluster_definition_ttl_seconds == 21600
        assert settings.definition_registry == "durable"
        assert settings.weights is DEFAULT_WEIGHTS

    def test_default_profile(self):
        settings = get_settings()
        assert settings.cluster_min_quakes == 3
        assert settings.significant_min_magnitude == 2.5
        assert settings.register_significant_clusters is True
        assert settings.weights.w_distance == 0.5
        assert settings.database["url"].startswith("postgresql://")

    def test_development_profile(self, monkeypatch):
        monkeypatch.setenv("QUAKESCOPE_PROFILE", "development")
        settings = get_settings()
        assert settings.fault_context_ttl_seconds == 300
        assert settings.definition_registry == "ttl"
        assert settings.register_significant_clusters is False
        assert settings.log_level == "DEBUG"

    def test_overrides(self):
        settings = AppSettings.from_config(
            {"cache": {"cluster_ttl_s": 60}, "clustering": {"min_quakes": 5}, "scoring": {"w_size": 0.4}}
        )
        assert settings.cluster_ttl_seconds == 60
        assert settings.cluster_min_quakes == 5
        assert settings.weights.w_size == 0.4
