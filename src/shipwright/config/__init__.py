"""Configuration module for the release engine."""

from .settings import Settings, get_settings
from .logging import configure_logging, JSONFormatter, TextFormatter, SanitizingFilter
from .loader import ReleaseConfig, load_release_config

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "JSONFormatter",
    "TextFormatter",
    "SanitizingFilter",
    "ReleaseConfig",
    "load_release_config",
]
