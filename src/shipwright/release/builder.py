"""Build the shared release context for a run.

Inspects the repository (branch, status, tags) and the build-project
metadata (version) and validates them against the configured plugins
before any plugin is allowed to run.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

from shipwright.errors import ConfigurationError
from shipwright.plugins.registry import render_archive_name

from .context import ReleaseContext
from .project import read_project_versions

if TYPE_CHECKING:
    from shipwright.config.loader import ReleaseConfig
    from shipwright.plugins.registry import PluginRegistry

    from .git import GitRepository

logger = logging.getLogger(__name__)

RELEASE_TAG_PATTERN = re.compile(r"^v(\d+)\.(\d+)\.(\d+)$")


def synthesize_tag(version: str) -> str:
    """Tag name used for a version on non-release branches."""
    return f"v{version}"


def select_release_tag(tags: list[str], version: str) -> str:
    """Pick the release tag at HEAD and check it against the project version.

    Raises:
        ConfigurationError: If there is no tag, no tag has the
            ``vMAJOR.MINOR.PATCH`` shape, or its version differs
    """
    if not tags:
        raise ConfigurationError(
            f"No tag on the current commit; tag it as {synthesize_tag(version)} "
            "before releasing"
        )

    matching = [t for t in tags if RELEASE_TAG_PATTERN.match(t)]
    if not matching:
        raise ConfigurationError(
            f"Malformed release tag {', '.join(tags)}: expected vMAJOR.MINOR.PATCH"
        )

    tag = matching[0]
    if len(matching) > 1:
        logger.warning("Several release tags on HEAD (%s); using %s", ", ".join(matching), tag)

    tag_version = tag[1:]
    if tag_version != version:
        raise ConfigurationError(
            f"Tag {tag} does not match project version {version}"
        )
    return tag


class ReleaseContextBuilder:
    """Creates the :class:`ReleaseContext` for one run."""

    def __init__(
        self,
        git: GitRepository,
        config: ReleaseConfig,
        working_dir: Path,
        script_dir: Path,
    ):
        self.git = git
        self.config = config
        self.working_dir = Path(working_dir)
        self.script_dir = Path(script_dir)

    def resolve_version(self, project_files: list[Path]) -> str:
        """Read the version from every project file; the first is canonical."""
        if not project_files:
            raise ConfigurationError("No project files configured (project_files)")

        versions = read_project_versions(project_files, self.config.version_property)
        canonical = versions[0]
        for path, other in zip(project_files[1:], versions[1:]):
            if other != canonical:
                logger.warning(
                    "Project %s declares version %s; using %s from %s",
                    path.name,
                    other,
                    canonical,
                    project_files[0].name,
                )
        return canonical

    def check_working_tree(self, is_release_branch: bool) -> None:
        """Refuse to release from a dirty tree; warn elsewhere."""
        changes = self.git.status()
        if not changes:
            return
        summary = ", ".join(changes[:5]) + (" ..." if len(changes) > 5 else "")
        if is_release_branch:
            raise ConfigurationError(
                f"Working tree has uncommitted changes on a release branch: {summary}"
            )
        logger.warning("Working tree has uncommitted changes: %s", summary)

    def build(self, registry: PluginRegistry) -> ReleaseContext:
        """Build the context.

        Raises:
            ConfigurationError: On any fatal configuration problem
            GitError: If a git command fails
        """
        project_files = self.config.resolve_project_files(self.working_dir)
        version = self.resolve_version(project_files)

        branch = self.git.current_branch()
        release_branches = registry.release_branches()
        is_release_branch = branch in release_branches

        self.check_working_tree(is_release_branch)

        if is_release_branch:
            tag = select_release_tag(self.git.tags_at_head(), version)
        else:
            tag = synthesize_tag(version)

        artifacts_dir = self.config.resolve_artifacts_dir(self.working_dir)
        artifacts_dir.mkdir(parents=True, exist_ok=True)
        archive_name = render_archive_name(
            registry.archive_name_pattern(branch), version, tag, branch
        )

        context = ReleaseContext(
            script_dir=self.script_dir,
            working_dir=self.working_dir,
            branch=branch,
            version=version,
            tag=tag,
            project_files=tuple(project_files),
            artifacts_dir=artifacts_dir,
            is_release_branch=is_release_branch,
            release_branches=tuple(release_branches),
            archive_name=archive_name,
        )
        logger.info(
            "Release context: branch=%s version=%s tag=%s mode=%s",
            branch,
            version,
            tag,
            "release" if is_release_branch else "non-release",
        )
        return context
