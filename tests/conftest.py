"""Shared fixtures for release engine tests."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from shipwright.config.loader import ReleaseConfig
from shipwright.engine import ReleaseEngine
from shipwright.plugins import PluginInvoker, PluginRegistry
from shipwright.release import ReleaseContext, ReleaseContextBuilder


class FakeGit:
    """In-memory stand-in for GitRepository."""

    def __init__(self, branch="main", status=None, tags=None, remote_tags=None):
        self.remote = "origin"
        self.branch = branch
        self.changes = list(status or [])
        self.tags = list(tags or [])
        self.remote_tags = set(remote_tags or [])
        self.pushed: list[str] = []
        self.remote_checks: list[str] = []

    def current_branch(self) -> str:
        return self.branch

    def status(self) -> list[str]:
        return list(self.changes)

    def is_clean(self) -> bool:
        return not self.changes

    def tags_at_head(self) -> list[str]:
        return list(self.tags)

    def remote_tag_exists(self, tag: str) -> bool:
        self.remote_checks.append(tag)
        return tag in self.remote_tags

    def push(self, ref: str, force: bool = False) -> None:
        self.pushed.append(ref)
        self.remote_tags.add(ref)


# Appends "<name> release_dir=<set|unset>" to calls.log in the artifacts dir.
RECORDING_PLUGIN = """
def run(settings):
    context = settings["context"]
    state = "set" if context.release_dir is not None else "unset"
    with open(context.artifacts_dir / "calls.log", "a") as f:
        f.write(f"{settings['name']} release_dir={state}\\n")
"""

FAILING_PLUGIN = """
def run(settings):
    context = settings["context"]
    with open(context.artifacts_dir / "calls.log", "a") as f:
        f.write(f"{settings['name']} release_dir=-\\n")
    raise RuntimeError("boom from " + settings["name"])
"""


def write_plugin(directory: Path, name: str, source: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}.py"
    path.write_text(textwrap.dedent(source))
    return path


def read_calls(context: ReleaseContext) -> list[str]:
    log = context.artifacts_dir / "calls.log"
    if not log.exists():
        return []
    return [line.split()[0] for line in log.read_text().splitlines()]


@pytest.fixture
def repo_dir(tmp_path):
    """Repository with a pyproject.toml at version 1.2.3."""
    repo = tmp_path / "repo"
    repo.mkdir()
    (repo / "pyproject.toml").write_text('[project]\nname = "demo"\nversion = "1.2.3"\n')
    return repo


@pytest.fixture
def builtin_dir(tmp_path):
    directory = tmp_path / "builtin"
    directory.mkdir()
    return directory


@pytest.fixture
def override_dir(tmp_path):
    directory = tmp_path / "override"
    directory.mkdir()
    return directory


@pytest.fixture
def make_engine(repo_dir, builtin_dir, override_dir):
    """Factory building an engine over a fake git and temp plugin dirs."""

    def _make(plugins, git: FakeGit, **config_fields) -> ReleaseEngine:
        config = ReleaseConfig.from_dict(
            {"project_files": ["pyproject.toml"], "plugins": plugins, **config_fields}
        )
        builder = ReleaseContextBuilder(
            git=git, config=config, working_dir=repo_dir, script_dir=builtin_dir.parent
        )
        return ReleaseEngine(
            registry=PluginRegistry.from_raw(config.plugins),
            context_builder=builder,
            git=git,
            invoker=PluginInvoker([builtin_dir, override_dir]),
        )

    return _make


def make_context(tmp_path: Path, **overrides) -> ReleaseContext:
    artifacts = tmp_path / "artifacts"
    artifacts.mkdir(exist_ok=True)
    fields = dict(
        script_dir=tmp_path,
        working_dir=tmp_path,
        branch="main",
        version="1.2.3",
        tag="v1.2.3",
        project_files=(tmp_path / "pyproject.toml",),
        artifacts_dir=artifacts,
        is_release_branch=True,
        release_branches=("main",),
        archive_name="release-1.2.3.zip",
    )
    fields.update(overrides)
    return ReleaseContext(**fields)
