"""Shipwright - release packaging through an ordered plugin pipeline."""

__version__ = "0.4.0"

from .errors import ConfigurationError, GitError, PluginLoadError, ShipwrightError
from .plugins import PluginEntry, PluginRegistry, Stage
from .release import ReleaseContext
from .engine import ReleaseEngine, RunResult

__all__ = [
    "ConfigurationError",
    "GitError",
    "PluginLoadError",
    "ShipwrightError",
    "PluginEntry",
    "PluginRegistry",
    "Stage",
    "ReleaseContext",
    "ReleaseEngine",
    "RunResult",
]
