"""Release engine orchestration.

Drives one run: builds the release context once, walks the plugin registry
in declared order, performs the one-time release-stage initialization before
the first runnable publish plugin, and applies the stage failure policy
after each invocation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from shipwright.config.loader import ReleaseConfig
from shipwright.config.settings import Settings
from shipwright.plugins.invoker import InvocationResult, InvocationStatus, PluginInvoker
from shipwright.plugins.registry import (
    PluginEntry,
    PluginRegistry,
    Stage,
    is_publish_capable,
    is_runnable,
    policy_for,
)
from shipwright.release.builder import ReleaseContextBuilder
from shipwright.release.context import ReleaseContext
from shipwright.release.git import GitRepository

logger = logging.getLogger(__name__)

RELEASE_SUBDIR = "release"


class RunMode(str, Enum):
    """Run mode, fixed once from the release context."""

    RELEASE = "release"
    NON_RELEASE = "non_release"


@dataclass
class EntryOutcome:
    """What happened to one plugin entry."""

    entry: PluginEntry
    result: InvocationResult

    @property
    def executed(self) -> bool:
        return self.result.executed

    @property
    def failed(self) -> bool:
        return self.result.failed


@dataclass
class RunResult:
    """Complete run result."""

    mode: RunMode
    context: ReleaseContext
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    outcomes: list[EntryOutcome] = field(default_factory=list)
    release_stage_initialized: bool = False
    aborted: bool = False
    aborted_by: Optional[str] = None
    suggested_release_branch: Optional[str] = None

    @property
    def failures(self) -> list[EntryOutcome]:
        return [o for o in self.outcomes if o.failed]

    @property
    def release_plugins_executed(self) -> list[str]:
        return [
            o.entry.name
            for o in self.outcomes
            if o.executed and o.entry.stage == Stage.RELEASE
        ]

    @property
    def status(self) -> str:
        if self.aborted:
            return "aborted"
        if self.failures:
            return "partial"
        return "success"

    @property
    def exit_code(self) -> int:
        return 0 if self.status == "success" else 1

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "status": self.status,
            "mode": self.mode.value,
            "branch": self.context.branch,
            "version": self.context.version,
            "tag": self.context.tag,
            "artifacts_dir": str(self.context.artifacts_dir),
            "context": self.context.describe(),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "release_stage_initialized": self.release_stage_initialized,
            "release_plugins_executed": self.release_plugins_executed,
            "aborted_by": self.aborted_by,
            "suggested_release_branch": self.suggested_release_branch,
            "plugins": [
                {
                    "name": o.entry.label,
                    "stage": o.entry.stage.value,
                    "status": o.result.status.value,
                    "skip_reason": o.result.skip_reason.value if o.result.skip_reason else None,
                    "error": o.result.error,
                    "duration_ms": o.result.duration_ms,
                }
                for o in self.outcomes
            ],
        }


class ReleaseEngine:
    """Runs the configured plugin pipeline once."""

    def __init__(
        self,
        registry: PluginRegistry,
        context_builder: ReleaseContextBuilder,
        git: GitRepository,
        invoker: PluginInvoker,
    ):
        self.registry = registry
        self.context_builder = context_builder
        self.git = git
        self.invoker = invoker
        self._release_stage_initialized = False

    @classmethod
    def from_settings(cls, settings: Settings, config: ReleaseConfig) -> ReleaseEngine:
        """Wire an engine from process settings and a release configuration."""
        git = GitRepository(
            settings.working_dir,
            remote=settings.git_remote,
            timeout=settings.git_timeout_seconds,
        )
        builder = ReleaseContextBuilder(
            git=git,
            config=config,
            working_dir=settings.working_dir,
            script_dir=settings.script_dir,
        )
        return cls(
            registry=config.registry(),
            context_builder=builder,
            git=git,
            invoker=PluginInvoker(settings.plugin_search_dirs),
        )

    @property
    def release_stage_initialized(self) -> bool:
        return self._release_stage_initialized

    def initialize_release_stage(self, context: ReleaseContext) -> None:
        """One-time preparation before the first publish plugin runs.

        Makes sure the release tag exists on the remote and gives the
        release directory a default under the artifacts directory.
        """
        if self.git.remote_tag_exists(context.tag):
            logger.info("Tag %s already on %s", context.tag, self.git.remote)
        else:
            logger.info("Tag %s missing on %s; pushing", context.tag, self.git.remote)
            self.git.push(context.tag)

        if context.release_dir is None:
            context.release_dir = context.artifacts_dir / RELEASE_SUBDIR
        elif not context.release_dir.is_absolute():
            context.release_dir = context.working_dir / context.release_dir
        context.release_dir.mkdir(parents=True, exist_ok=True)
        self._release_stage_initialized = True

    def run(self) -> RunResult:
        """Execute every plugin entry in declared order.

        Returns:
            RunResult with per-entry outcomes

        Raises:
            ConfigurationError: If the context cannot be built
            GitError: If a git command fails during setup
        """
        context = self.context_builder.build(self.registry)
        mode = RunMode.RELEASE if context.is_release_branch else RunMode.NON_RELEASE
        result = RunResult(mode=mode, context=context)
        self._release_stage_initialized = False

        logger.info(
            "Starting %s run of %d plugin(s) on %s",
            mode.value.replace("_", "-"),
            len(self.registry),
            context.branch,
        )

        for entry in self.registry:
            if (
                is_publish_capable(entry)
                and not self._release_stage_initialized
                and is_runnable(entry, context.branch)
            ):
                self.initialize_release_stage(context)
                result.release_stage_initialized = True

            policy = policy_for(entry.stage)
            invocation = self.invoker.invoke(entry, context)
            result.outcomes.append(EntryOutcome(entry=entry, result=invocation))

            if invocation.status != InvocationStatus.FAILED:
                continue
            if policy.abort_on_failure:
                logger.error(
                    "Aborting run: %s failed in the %s stage",
                    entry.name,
                    entry.stage.value,
                    extra={"plugin": entry.name, "stage": entry.stage.value},
                )
                result.aborted = True
                result.aborted_by = entry.name
                break
            logger.warning(
                "Continuing after %s failure in the %s stage",
                entry.name,
                entry.stage.value,
                extra={"plugin": entry.name, "stage": entry.stage.value},
            )

        if mode == RunMode.NON_RELEASE and context.release_branches:
            result.suggested_release_branch = context.release_branches[0]

        result.completed_at = datetime.now(timezone.utc)
        self._log_summary(result)
        return result

    def _log_summary(self, result: RunResult) -> None:
        context = result.context
        executed = result.release_plugins_executed
        if executed:
            logger.info("Release-stage plugins executed: %s", ", ".join(executed))
        else:
            logger.info("No release-stage plugin executed")

        if result.suggested_release_branch:
            logger.info(
                "Branch '%s' is not a release branch; run on '%s' to publish",
                context.branch,
                result.suggested_release_branch,
            )
        elif result.mode == RunMode.NON_RELEASE:
            logger.info("No publish plugin is configured for any branch")

        failed = [o.entry.name for o in result.failures]
        logger.info(
            "Run %s (%d failed%s); artifacts in %s",
            result.status,
            len(failed),
            f": {', '.join(failed)}" if failed else "",
            context.artifacts_dir,
        )
