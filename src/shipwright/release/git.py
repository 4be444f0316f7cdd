"""Git operations needed by a release run."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from shipwright.errors import GitError

logger = logging.getLogger(__name__)


class GitRepository:
    """Thin wrapper over the ``git`` executable for one working tree.

    Every failing command raises :class:`GitError`; nothing is retried.
    """

    def __init__(self, path: str | Path, remote: str = "origin", timeout: int = 120):
        self.path = Path(path).resolve()
        self.remote = remote
        self.timeout = timeout

    def current_branch(self) -> str:
        """Get the checked-out branch name."""
        return self._run("rev-parse", "--abbrev-ref", "HEAD")

    def status(self) -> list[str]:
        """Get porcelain status lines for the working tree."""
        output = self._run("status", "--porcelain")
        return [line for line in output.splitlines() if line.strip()]

    def is_clean(self) -> bool:
        return not self.status()

    def head_commit(self) -> str:
        return self._run("rev-parse", "HEAD")

    def tags_at_head(self) -> list[str]:
        """Get tags pointing at the current commit."""
        output = self._run("tag", "--points-at", "HEAD")
        return [line.strip() for line in output.splitlines() if line.strip()]

    def remote_tag_exists(self, tag: str) -> bool:
        """Check whether a tag exists on the configured remote."""
        output = self._run("ls-remote", "--tags", self.remote, f"refs/tags/{tag}")
        return any(
            line.split()[-1] == f"refs/tags/{tag}"
            for line in output.splitlines()
            if line.strip()
        )

    def push(self, ref: str, force: bool = False) -> None:
        """Push a branch or tag to the configured remote."""
        args = ["push", self.remote, ref]
        if force:
            args.insert(1, "--force")
        self._run(*args)
        logger.info("Pushed %s to %s", ref, self.remote)

    def _run(self, *args: str) -> str:
        command = ["git", *args]
        logger.debug("Running: %s", " ".join(command))
        try:
            result = subprocess.run(
                command,
                cwd=str(self.path),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                encoding="utf-8",
            )
        except FileNotFoundError as e:
            raise GitError(command, -1, "git executable not found") from e
        except subprocess.TimeoutExpired as e:
            raise GitError(command, -1, f"timed out after {self.timeout}s") from e

        if result.returncode != 0:
            raise GitError(command, result.returncode, result.stderr)
        return result.stdout.strip()
