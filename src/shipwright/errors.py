"""Exception hierarchy for release runs."""

from __future__ import annotations


class ShipwrightError(Exception):
    """Base class for all errors raised by the release engine."""


class ConfigurationError(ShipwrightError):
    """Raised for fatal configuration or precondition problems.

    Covers missing project files, missing version properties, malformed
    tags, tag/version mismatches and an unclean tree on a release branch.
    """


class GitError(ShipwrightError):
    """Raised when a git command exits non-zero."""

    def __init__(self, command: list[str], returncode: int, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = f": {self.stderr}" if self.stderr else ""
        super().__init__(
            f"git command failed ({' '.join(command)}, exit {returncode}){detail}"
        )


class PluginLoadError(ShipwrightError):
    """Raised when a plugin module cannot provide its entrypoint."""
