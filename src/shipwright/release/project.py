"""Read declared versions from build-project descriptor files."""

from __future__ import annotations

import json
import logging
import tomllib
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any

from shipwright.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_VERSION_PROPERTY = "version"

_XML_SUFFIXES = {".csproj", ".fsproj", ".vbproj", ".props", ".targets", ".xml", ".nuspec"}


def read_project_version(
    path: str | Path, property_name: str = DEFAULT_VERSION_PROPERTY
) -> str:
    """Read a version property from a project descriptor.

    Supports pyproject-style TOML, JSON manifests (package.json) and XML
    descriptors (MSBuild projects, pom.xml, nuspec).

    Args:
        path: Project descriptor file
        property_name: Property holding the version (dotted path for TOML/JSON)

    Returns:
        The version string

    Raises:
        ConfigurationError: If the file is missing, unreadable, or has no
            version property
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Project file not found: {path}")

    suffix = path.suffix.lower()
    try:
        if suffix == ".toml":
            version = _read_toml_version(path, property_name)
        elif suffix == ".json":
            with open(path, encoding="utf-8") as f:
                version = _lookup(json.load(f), property_name)
        elif suffix in _XML_SUFFIXES:
            version = _read_xml_version(path, property_name)
        else:
            raise ConfigurationError(f"Unsupported project file type: {path.name}")
    except (tomllib.TOMLDecodeError, json.JSONDecodeError, ET.ParseError) as e:
        raise ConfigurationError(f"Cannot parse project file {path}: {e}") from e

    if version is None or not str(version).strip():
        raise ConfigurationError(
            f"Project file {path} does not declare '{property_name}'"
        )
    return str(version).strip()


def _lookup(data: Any, dotted: str) -> Any:
    current = data
    for part in dotted.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def _read_toml_version(path: Path, property_name: str) -> Any:
    with open(path, "rb") as f:
        data = tomllib.load(f)

    if "." in property_name:
        return _lookup(data, property_name)

    for table in ("project", "tool.poetry"):
        value = _lookup(data, f"{table}.{property_name}")
        if value is not None:
            return value
    return data.get(property_name)


def _read_xml_version(path: Path, property_name: str) -> str | None:
    root = ET.parse(path).getroot()
    wanted = property_name.lower()
    # Direct children win over nested ones (pom.xml <parent><version>).
    for element in [*root, *root.iter()]:
        # Strip "{namespace}" prefixes (pom.xml, nuspec).
        tag = element.tag.rsplit("}", 1)[-1] if isinstance(element.tag, str) else ""
        if tag.lower() == wanted and element.text and element.text.strip():
            return element.text.strip()
    return None


def read_project_versions(
    paths: list[Path], property_name: str = DEFAULT_VERSION_PROPERTY
) -> list[str]:
    """Read versions from every project file, in order."""
    return [read_project_version(p, property_name) for p in paths]
