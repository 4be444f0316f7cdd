"""Plugin entry normalization and registry queries.

Turns the loosely-typed ``plugins`` value from the release configuration
into an ordered, validated list of :class:`PluginEntry` objects and answers
questions about them (stage policy, publish capability, branch gating,
archive naming). Nothing here has side effects.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from shipwright.errors import ConfigurationError

# Plugins that publish externally and are therefore branch-gated.
PUBLISH_PLUGINS: frozenset[str] = frozenset({"github_release", "feed_publish"})

DEFAULT_ARCHIVE_NAME_PATTERN = "release-{version}.zip"
ARCHIVE_NAME_FIELD = "archive_name"


class Stage(str, Enum):
    """Pipeline stage of a plugin entry."""

    BUILD = "Build"
    TEST = "Test"
    GATE = "Gate"
    RELEASE = "Release"

    @classmethod
    def parse(cls, value: Any) -> Stage:
        """Parse a stage name case-insensitively."""
        if isinstance(value, cls):
            return value
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.RELEASE
        if isinstance(value, str):
            wanted = value.strip().lower()
            for stage in cls:
                if stage.value.lower() == wanted:
                    return stage
        allowed = ", ".join(s.value for s in cls)
        raise ValueError(f"unknown stage {value!r} (expected one of: {allowed})")


@dataclass(frozen=True)
class StagePolicy:
    """Failure handling for one stage."""

    abort_on_failure: bool


# Release-stage publishers are independent of each other, so one failing
# publisher must not stop the rest. Every other stage gates the run.
STAGE_POLICIES: dict[Stage, StagePolicy] = {
    Stage.BUILD: StagePolicy(abort_on_failure=True),
    Stage.TEST: StagePolicy(abort_on_failure=True),
    Stage.GATE: StagePolicy(abort_on_failure=True),
    Stage.RELEASE: StagePolicy(abort_on_failure=False),
}

_unmapped = [s.value for s in Stage if s not in STAGE_POLICIES]
if _unmapped:
    raise RuntimeError(f"Stages without a failure policy: {', '.join(_unmapped)}")


def policy_for(stage: Stage) -> StagePolicy:
    """Get the failure policy for a stage."""
    return STAGE_POLICIES[stage]


class SkipReason(str, Enum):
    """Why an entry will not run on the current branch."""

    UNNAMED = "unnamed"
    DISABLED = "disabled"
    NO_BRANCHES = "no_branches"
    BRANCH_NOT_ALLOWED = "branch_not_allowed"


class PluginEntry(BaseModel):
    """One configured pipeline step.

    Fields other than ``name``, ``enabled``, ``stage`` and ``branches`` are
    plugin-specific and are kept verbatim as pydantic extras.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    name: str = ""
    enabled: bool = False
    stage: Stage = Stage.RELEASE
    branches: list[str] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("enabled", mode="before")
    @classmethod
    def _coerce_enabled(cls, value: Any) -> Any:
        if value is None or value == "":
            return False
        return value

    @field_validator("stage", mode="before")
    @classmethod
    def _coerce_stage(cls, value: Any) -> Stage:
        return Stage.parse(value)

    @field_validator("branches", mode="before")
    @classmethod
    def _coerce_branches(cls, value: Any) -> list[str]:
        # A bare string is a single branch name.
        if value is None:
            return []
        if isinstance(value, str):
            return [value.strip()] if value.strip() else []
        if isinstance(value, (list, tuple)):
            return [str(b).strip() for b in value if b is not None and str(b).strip()]
        raise ValueError("branches must be a string or a list of strings")

    @property
    def options(self) -> dict[str, Any]:
        """Plugin-specific fields."""
        return dict(self.__pydantic_extra__ or {})

    def get(self, key: str, default: Any = None) -> Any:
        """Get a plugin-specific field."""
        return self.options.get(key, default)

    def settings(self) -> dict[str, Any]:
        """Shallow copy of every field as a plain dict."""
        data = dict(self)
        data["stage"] = self.stage.value
        return data

    @property
    def label(self) -> str:
        return self.name or "<unnamed>"


def normalize_entries(raw: Any) -> list[PluginEntry]:
    """Normalize a raw ``plugins`` value into ordered plugin entries.

    Args:
        raw: None, a single mapping, or a list of mappings

    Returns:
        Entries in declaration order

    Raises:
        ConfigurationError: If the value or an entry is malformed
    """
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        items = [raw]
    elif isinstance(raw, (list, tuple)):
        items = list(raw)
    else:
        raise ConfigurationError(
            f"plugins must be a mapping or a list, got {type(raw).__name__}"
        )

    entries = []
    for index, item in enumerate(items):
        if not isinstance(item, Mapping):
            raise ConfigurationError(
                f"Plugin {index + 1}: must be a mapping, got {type(item).__name__}"
            )
        try:
            entries.append(PluginEntry.model_validate(dict(item)))
        except ValidationError as e:
            label = item.get("name") or f"#{index + 1}"
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigurationError(f"Plugin {label}: {problems}") from e
    return entries


def is_publish_capable(entry: PluginEntry) -> bool:
    """True if the entry names a plugin that publishes externally."""
    return entry.name in PUBLISH_PLUGINS


def skip_reason(entry: PluginEntry, branch: str) -> SkipReason | None:
    """Return why an entry would be skipped on a branch, or None if runnable.

    Checks in order: name, enabled, then branch gating for publish-capable
    entries. Branches are ignored for every other plugin.
    """
    if not entry.name:
        return SkipReason.UNNAMED
    if not entry.enabled:
        return SkipReason.DISABLED
    if is_publish_capable(entry):
        if not entry.branches:
            return SkipReason.NO_BRANCHES
        if branch not in entry.branches:
            return SkipReason.BRANCH_NOT_ALLOWED
    return None


def is_runnable(entry: PluginEntry, branch: str) -> bool:
    """Side-effect free runnability check."""
    return skip_reason(entry, branch) is None


def release_branches(entries: list[PluginEntry]) -> list[str]:
    """Ordered union of branches of enabled publish-capable entries."""
    branches: list[str] = []
    for entry in entries:
        if not entry.enabled or not is_publish_capable(entry):
            continue
        for branch in entry.branches:
            if branch not in branches:
                branches.append(branch)
    return branches


def compute_archive_name_pattern(entries: list[PluginEntry], branch: str) -> str:
    """First custom archive-name pattern declared by a runnable entry."""
    for entry in entries:
        if not is_runnable(entry, branch):
            continue
        pattern = entry.get(ARCHIVE_NAME_FIELD)
        if isinstance(pattern, str) and pattern.strip():
            return pattern.strip()
    return DEFAULT_ARCHIVE_NAME_PATTERN


def render_archive_name(pattern: str, version: str, tag: str, branch: str) -> str:
    """Fill ``{version}``, ``{tag}`` and ``{branch}`` into an archive pattern."""
    try:
        return pattern.format(
            version=version, tag=tag, branch=branch.replace("/", "-")
        )
    except (KeyError, IndexError, ValueError, AttributeError) as e:
        raise ConfigurationError(
            f"Invalid archive name pattern {pattern!r}: {e}"
        ) from e


class PluginRegistry:
    """Ordered, read-only collection of plugin entries."""

    def __init__(self, entries: list[PluginEntry] | None = None):
        self._entries: tuple[PluginEntry, ...] = tuple(entries or [])

    @classmethod
    def from_raw(cls, raw: Any) -> PluginRegistry:
        """Build a registry from a raw configuration value."""
        return cls(normalize_entries(raw))

    def __iter__(self) -> Iterator[PluginEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[PluginEntry]:
        return list(self._entries)

    def publish_entries(self) -> list[PluginEntry]:
        return [e for e in self._entries if is_publish_capable(e)]

    def release_branches(self) -> list[str]:
        return release_branches(self.publish_entries())

    def archive_name_pattern(self, branch: str) -> str:
        return compute_archive_name_pattern(self.entries, branch)
