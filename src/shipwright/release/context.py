"""Shared release context passed to every plugin in a run."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Fields plugins may add during a run. Consumers must check presence first.
EXTENSION_FIELDS = (
    "test_results",
    "package_file",
    "symbols_file",
    "archive_inputs",
    "release_dir",
    "release_archive",
    "release_assets",
    "publish_completed",
)


class SuiteMetrics(BaseModel):
    """Test suite and coverage figures published by a test plugin."""

    passed: int = 0
    failed: int = 0
    skipped: int = 0
    line_coverage: Optional[float] = Field(None, ge=0.0, le=100.0)
    branch_coverage: Optional[float] = Field(None, ge=0.0, le=100.0)
    report_file: Optional[Path] = None

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.skipped


class ReleaseContext(BaseModel):
    """Mutable record shared across all plugin invocations in a run.

    Core fields are fixed when the context is built and reject assignment.
    Extension fields start as None and are set by plugins; last writer wins.
    Assignments are validated against the field types. Plugins may also
    attach fields of their own.
    """

    model_config = ConfigDict(extra="allow", validate_assignment=True)

    # Core
    script_dir: Path = Field(..., frozen=True)
    working_dir: Path = Field(..., frozen=True)
    branch: str = Field(..., frozen=True)
    version: str = Field(..., frozen=True)
    tag: str = Field(..., frozen=True)
    project_files: tuple[Path, ...] = Field(..., frozen=True)
    artifacts_dir: Path = Field(..., frozen=True)
    is_release_branch: bool = Field(..., frozen=True)
    release_branches: tuple[str, ...] = Field((), frozen=True)
    archive_name: str = Field("", frozen=True)

    # Extensions
    test_results: Optional[SuiteMetrics] = None
    package_file: Optional[Path] = None
    symbols_file: Optional[Path] = None
    archive_inputs: Optional[list[Path]] = None
    release_dir: Optional[Path] = None
    release_archive: Optional[Path] = None
    release_assets: Optional[list[Path]] = None
    publish_completed: Optional[bool] = None

    @property
    def is_non_release_branch(self) -> bool:
        return not self.is_release_branch

    def has(self, field_name: str) -> bool:
        """True if an extension field has been set by some plugin."""
        if field_name in type(self).model_fields and field_name not in EXTENSION_FIELDS:
            raise KeyError(f"Not an extension field: {field_name}")
        return getattr(self, field_name, None) is not None

    def add_release_asset(self, path: Path) -> None:
        """Append a final release asset, creating the list on first use."""
        if self.release_assets is None:
            self.release_assets = []
        if path not in self.release_assets:
            self.release_assets.append(path)

    def describe(self) -> dict:
        """Summary of the populated fields; ``str()`` stands in for non-JSON values."""
        return self.model_dump(mode="json", exclude_none=True, fallback=str)
