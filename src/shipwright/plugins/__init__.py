"""Plugin System.

Plugin entries come from the release configuration; each names a module
exposing ``run(settings)`` in the built-in or user override directory.
"""

from .registry import (
    DEFAULT_ARCHIVE_NAME_PATTERN,
    PUBLISH_PLUGINS,
    STAGE_POLICIES,
    PluginEntry,
    PluginRegistry,
    SkipReason,
    Stage,
    StagePolicy,
    compute_archive_name_pattern,
    is_publish_capable,
    is_runnable,
    normalize_entries,
    policy_for,
    release_branches,
    render_archive_name,
    skip_reason,
)
from .loader import (
    discover_plugins,
    load_plugin_entrypoint,
    resolve_plugin_path,
)
from .invoker import (
    CONTEXT_KEY,
    SCRATCH_DIR_KEY,
    InvocationResult,
    InvocationStatus,
    PluginInvoker,
    build_settings,
)

__all__ = [
    # Registry
    "DEFAULT_ARCHIVE_NAME_PATTERN",
    "PUBLISH_PLUGINS",
    "STAGE_POLICIES",
    "PluginEntry",
    "PluginRegistry",
    "SkipReason",
    "Stage",
    "StagePolicy",
    "compute_archive_name_pattern",
    "is_publish_capable",
    "is_runnable",
    "normalize_entries",
    "policy_for",
    "release_branches",
    "render_archive_name",
    "skip_reason",
    # Loader
    "discover_plugins",
    "load_plugin_entrypoint",
    "resolve_plugin_path",
    # Invoker
    "CONTEXT_KEY",
    "SCRATCH_DIR_KEY",
    "InvocationResult",
    "InvocationStatus",
    "PluginInvoker",
    "build_settings",
]
