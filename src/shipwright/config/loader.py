"""YAML release configuration loader."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from shipwright.errors import ConfigurationError
from shipwright.plugins.registry import PluginRegistry
from shipwright.release.project import DEFAULT_VERSION_PROPERTY


class ReleaseConfig(BaseModel):
    """Release configuration for one repository."""

    project_files: list[Path] = Field(default_factory=list)
    artifacts_dir: Path = Path("artifacts")
    version_property: str = DEFAULT_VERSION_PROPERTY
    plugins: Any = None

    @field_validator("project_files", mode="before")
    @classmethod
    def _coerce_project_files(cls, value: Any) -> Any:
        # Supports string or list
        if value is None:
            return []
        if isinstance(value, (str, Path)):
            return [value]
        return value

    @field_validator("artifacts_dir", mode="before")
    @classmethod
    def _default_artifacts_dir(cls, value: Any) -> Any:
        if value is None or value == "":
            return Path("artifacts")
        return value

    @classmethod
    def from_dict(cls, data: dict) -> ReleaseConfig:
        """Create ReleaseConfig from dictionary."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigurationError(f"Invalid release configuration: {problems}") from e

    def registry(self) -> PluginRegistry:
        """Normalize the configured plugins into a registry."""
        return PluginRegistry.from_raw(self.plugins)

    def resolve_project_files(self, working_dir: Path) -> list[Path]:
        return [p if p.is_absolute() else working_dir / p for p in self.project_files]

    def resolve_artifacts_dir(self, working_dir: Path) -> Path:
        if self.artifacts_dir.is_absolute():
            return self.artifacts_dir
        return working_dir / self.artifacts_dir


def load_release_config(path: str | Path) -> ReleaseConfig:
    """Load release configuration from a YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        ReleaseConfig object

    Raises:
        ConfigurationError: If the file is missing, not valid YAML, or does
            not contain a mapping
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Release configuration not found: {path}")

    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Release configuration must be a YAML mapping: {path}")

    return ReleaseConfig.from_dict(data)
