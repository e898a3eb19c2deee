"""Configuration helpers."""

from .config_loader import AppSettings, ConfigLoader, get_config, get_settings

__all__ = ["AppSettings", "ConfigLoader", "get_config", "get_settings"]
