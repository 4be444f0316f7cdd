"""Resolve, validate and call a single plugin entry."""

from __future__ import annotations

import logging
import tempfile
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from shipwright.errors import PluginLoadError
from shipwright.release.context import ReleaseContext

from .loader import load_plugin_entrypoint, resolve_plugin_path
from .registry import PluginEntry, SkipReason, skip_reason

logger = logging.getLogger(__name__)

CONTEXT_KEY = "context"
SCRATCH_DIR_KEY = "scratch_dir"


class InvocationStatus(str, Enum):
    """Outcome of one invocation attempt."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass
class InvocationResult:
    """Result of invoking a plugin entry."""

    plugin: str
    status: InvocationStatus
    skip_reason: SkipReason | None = None
    error: str | None = None
    exception: BaseException | None = None
    duration_ms: int = 0
    source: Path | None = None

    @property
    def executed(self) -> bool:
        """True if the entrypoint was actually called."""
        return self.status in (InvocationStatus.SUCCEEDED, InvocationStatus.FAILED)

    @property
    def failed(self) -> bool:
        return self.status == InvocationStatus.FAILED


def build_settings(entry: PluginEntry, context: ReleaseContext) -> dict[str, Any]:
    """Merge an entry's fields with the shared context into one settings bag."""
    settings = entry.settings()
    settings[CONTEXT_KEY] = context
    return settings


class PluginInvoker:
    """Invokes plugin entries against the shared release context.

    The invoker decides whether an entry can run and reports what happened;
    whether a failure aborts the run is left to the caller.
    """

    def __init__(self, search_dirs: list[Path]):
        """Initialize invoker.

        Args:
            search_dirs: Plugin directories in lookup order (built-in first,
                then the user override directory)
        """
        self.search_dirs = [Path(d) for d in search_dirs]

    def resolve(self, name: str) -> Path | None:
        return resolve_plugin_path(name, self.search_dirs)

    def check_runnable(self, entry: PluginEntry, context: ReleaseContext) -> SkipReason | None:
        """Run the branch and enablement checks, logging any skip."""
        reason = skip_reason(entry, context.branch)
        log_extra = {"plugin": entry.label, "stage": entry.stage.value}
        if reason == SkipReason.UNNAMED:
            logger.warning("Skipping plugin entry without a name", extra=log_extra)
        elif reason == SkipReason.DISABLED:
            logger.info("Skipping %s: not enabled", entry.label, extra=log_extra)
        elif reason == SkipReason.NO_BRANCHES:
            logger.info(
                "Skipping %s: no branches configured for a publish plugin",
                entry.label,
                extra=log_extra,
            )
        elif reason == SkipReason.BRANCH_NOT_ALLOWED:
            logger.info(
                "Skipping %s: branch '%s' is not one of %s",
                entry.label,
                context.branch,
                ", ".join(entry.branches),
                extra=log_extra,
            )
        return reason

    def invoke(self, entry: PluginEntry, context: ReleaseContext) -> InvocationResult:
        """Invoke a plugin entry if it is runnable.

        Args:
            entry: Plugin entry to invoke
            context: Shared release context, mutated in place by the plugin

        Returns:
            InvocationResult describing the outcome
        """
        reason = self.check_runnable(entry, context)
        if reason is not None:
            return InvocationResult(
                plugin=entry.label, status=InvocationStatus.SKIPPED, skip_reason=reason
            )

        log_extra = {"plugin": entry.name, "stage": entry.stage.value}
        source = self.resolve(entry.name)
        if source is None:
            searched = ", ".join(str(d) for d in self.search_dirs)
            logger.error(
                "Plugin '%s' not found (searched: %s)", entry.name, searched, extra=log_extra
            )
            return InvocationResult(
                plugin=entry.name,
                status=InvocationStatus.NOT_FOUND,
                error=f"Plugin module not found: {entry.name}",
            )

        start = time.time()
        try:
            entrypoint = load_plugin_entrypoint(source)
        except PluginLoadError as e:
            logger.error("Plugin '%s' cannot be loaded: %s", entry.name, e, extra=log_extra)
            return InvocationResult(
                plugin=entry.name,
                status=InvocationStatus.NOT_FOUND,
                error=str(e),
                source=source,
            )
        except (Exception, SystemExit) as e:
            return self._failure(entry, source, start, e)

        logger.info("Running %s (%s stage)", entry.name, entry.stage.value, extra=log_extra)
        settings = build_settings(entry, context)
        try:
            with tempfile.TemporaryDirectory(prefix=f"shipwright-{entry.name}-") as scratch:
                settings[SCRATCH_DIR_KEY] = Path(scratch)
                entrypoint(settings)
        except (Exception, SystemExit) as e:
            return self._failure(entry, source, start, e)

        duration_ms = int((time.time() - start) * 1000)
        logger.info("%s finished in %d ms", entry.name, duration_ms, extra=log_extra)
        return InvocationResult(
            plugin=entry.name,
            status=InvocationStatus.SUCCEEDED,
            duration_ms=duration_ms,
            source=source,
        )

    def _failure(
        self, entry: PluginEntry, source: Path, start: float, error: BaseException
    ) -> InvocationResult:
        if isinstance(error, SystemExit):
            message = f"plugin called sys.exit({error.code!r})"
        else:
            message = str(error) or type(error).__name__
        logger.error(
            "Plugin '%s' failed: %s",
            entry.name,
            message,
            exc_info=logger.isEnabledFor(logging.DEBUG),
            extra={"plugin": entry.name, "stage": entry.stage.value},
        )
        return InvocationResult(
            plugin=entry.name,
            status=InvocationStatus.FAILED,
            error=message,
            exception=error,
            duration_ms=int((time.time() - start) * 1000),
            source=source,
        )
