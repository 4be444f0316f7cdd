"""Plugin discovery and loading.

A plugin is a Python file named after the plugin (``<name>.py``) that
defines a module-level ``run(settings)`` function. Files are looked up in an
ordered list of directories: the built-in plugin directory first, then the
user override directory.
"""

from __future__ import annotations

import importlib.util
import itertools
import logging
import sys
from pathlib import Path
from typing import Any, Callable

from shipwright.errors import PluginLoadError

logger = logging.getLogger(__name__)

ENTRYPOINT = "run"

PluginEntrypoint = Callable[[dict[str, Any]], None]

_load_counter = itertools.count(1)


def resolve_plugin_path(name: str, search_dirs: list[Path]) -> Path | None:
    """Find the module file backing a plugin name.

    Args:
        name: Plugin name (must be a Python identifier)
        search_dirs: Directories to consult, in order

    Returns:
        Path of the first ``<name>.py`` found, or None
    """
    if not name or not name.isidentifier() or name.startswith("_"):
        return None

    for directory in search_dirs:
        candidate = Path(directory) / f"{name}.py"
        if candidate.is_file():
            return candidate
    return None


def load_plugin_entrypoint(filepath: str | Path) -> PluginEntrypoint:
    """Load a plugin file as a fresh module and return its entrypoint.

    The entrypoint is read from the module object just executed, so a
    ``run`` function left over from an earlier plugin is never picked up.

    Args:
        filepath: Path to the plugin file

    Returns:
        The module's ``run`` callable

    Raises:
        PluginLoadError: If the file has no callable ``run``
    """
    filepath = Path(filepath)
    if not filepath.suffix == ".py":
        raise PluginLoadError(f"Plugin must be a .py file: {filepath}")

    module_name = f"shipwright_plugin_{filepath.stem}_{next(_load_counter)}"
    spec = importlib.util.spec_from_file_location(module_name, filepath)
    if not spec or not spec.loader:
        raise PluginLoadError(f"Cannot load module spec from: {filepath}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise

    entrypoint = module.__dict__.get(ENTRYPOINT)
    if not callable(entrypoint):
        sys.modules.pop(module_name, None)
        raise PluginLoadError(
            f"Plugin {filepath} does not define a callable '{ENTRYPOINT}(settings)'"
        )

    logger.debug("Loaded plugin module %s from %s", module_name, filepath)
    return entrypoint


def discover_plugins(search_dirs: list[Path]) -> dict[str, Path]:
    """List plugin names resolvable from the search directories.

    Earlier directories win when a name appears in more than one.
    """
    found: dict[str, Path] = {}
    for directory in search_dirs:
        directory = Path(directory)
        if not directory.is_dir():
            logger.debug("Plugin directory not found: %s", directory)
            continue
        for filepath in sorted(directory.glob("*.py")):
            # Skip private files
            if filepath.name.startswith("_"):
                continue
            found.setdefault(filepath.stem, filepath)
    return found
