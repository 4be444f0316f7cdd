"""Tests for invoking a single plugin entry."""

import logging
import sys

from conftest import FAILING_PLUGIN, make_context, write_plugin
from shipwright.plugins.invoker import (
    CONTEXT_KEY,
    SCRATCH_DIR_KEY,
    InvocationStatus,
    PluginInvoker,
    build_settings,
)
from shipwright.plugins.registry import PluginEntry, SkipReason

CAPTURE_PLUGIN = """
def run(settings):
    context = settings["context"]
    context.captured = dict(settings)
    scratch = settings["scratch_dir"]
    (scratch / "tmp.txt").write_text("x")
    context.package_file = scratch / "tmp.txt"
"""


def entry(**fields):
    return PluginEntry.model_validate({"enabled": True, **fields})


class TestBuildSettings:
    def test_contains_entry_fields_and_context(self, tmp_path):
        context = make_context(tmp_path)
        settings = build_settings(entry(name="shell", stage="Build", command="make"), context)
        assert settings[CONTEXT_KEY] is context
        assert settings["name"] == "shell"
        assert settings["stage"] == "Build"
        assert settings["command"] == "make"


class TestSkips:
    def test_disabled(self, tmp_path, builtin_dir, caplog):
        invoker = PluginInvoker([builtin_dir])
        with caplog.at_level(logging.INFO):
            result = invoker.invoke(entry(name="shell", enabled=False), make_context(tmp_path))
        assert result.status == InvocationStatus.SKIPPED
        assert result.skip_reason == SkipReason.DISABLED
        assert result.executed is False
        assert "not enabled" in caplog.text

    def test_unnamed_warns(self, tmp_path, builtin_dir, caplog):
        invoker = PluginInvoker([builtin_dir])
        with caplog.at_level(logging.WARNING):
            result = invoker.invoke(entry(), make_context(tmp_path))
        assert result.skip_reason == SkipReason.UNNAMED
        assert "without a name" in caplog.text

    def test_publish_on_other_branch(self, tmp_path, builtin_dir, caplog):
        invoker = PluginInvoker([builtin_dir])
        context = make_context(tmp_path, branch="develop", is_release_branch=False)
        with caplog.at_level(logging.INFO):
            result = invoker.invoke(
                entry(name="github_release", branches=["main"]), context
            )
        assert result.skip_reason == SkipReason.BRANCH_NOT_ALLOWED
        assert "develop" in caplog.text

    def test_publish_without_branches(self, tmp_path, builtin_dir):
        invoker = PluginInvoker([builtin_dir])
        result = invoker.invoke(entry(name="feed_publish"), make_context(tmp_path))
        assert result.skip_reason == SkipReason.NO_BRANCHES


class TestNotFound:
    def test_missing_module(self, tmp_path, builtin_dir, override_dir, caplog):
        invoker = PluginInvoker([builtin_dir, override_dir])
        with caplog.at_level(logging.ERROR):
            result = invoker.invoke(entry(name="nowhere"), make_context(tmp_path))
        assert result.status == InvocationStatus.NOT_FOUND
        assert result.failed is False
        assert "nowhere" in caplog.text
        assert str(override_dir) in caplog.text

    def test_module_without_run(self, tmp_path, builtin_dir, caplog):
        write_plugin(builtin_dir, "norun", "VALUE = 1\n")
        invoker = PluginInvoker([builtin_dir])
        with caplog.at_level(logging.ERROR):
            result = invoker.invoke(entry(name="norun"), make_context(tmp_path))
        assert result.status == InvocationStatus.NOT_FOUND
        assert "cannot be loaded" in caplog.text


class TestInvocation:
    def test_success_mutates_shared_context(self, tmp_path, builtin_dir):
        write_plugin(builtin_dir, "capture", CAPTURE_PLUGIN)
        invoker = PluginInvoker([builtin_dir])
        context = make_context(tmp_path)
        result = invoker.invoke(entry(name="capture", stage="Build", flavor="x"), context)

        assert result.status == InvocationStatus.SUCCEEDED
        assert result.executed is True
        assert result.source == builtin_dir / "capture.py"
        assert context.captured["flavor"] == "x"
        assert context.captured[CONTEXT_KEY] is context
        assert SCRATCH_DIR_KEY in context.captured

    def test_scratch_dir_removed_after_run(self, tmp_path, builtin_dir):
        write_plugin(builtin_dir, "capture", CAPTURE_PLUGIN)
        context = make_context(tmp_path)
        PluginInvoker([builtin_dir]).invoke(entry(name="capture"), context)
        scratch = context.captured[SCRATCH_DIR_KEY]
        assert not scratch.exists()

    def test_scratch_dir_removed_after_failure(self, tmp_path, builtin_dir):
        write_plugin(
            builtin_dir,
            "crash",
            """
            def run(settings):
                settings["context"].captured = settings["scratch_dir"]
                raise ValueError("bad input")
            """,
        )
        context = make_context(tmp_path)
        result = PluginInvoker([builtin_dir]).invoke(entry(name="crash"), context)
        assert result.status == InvocationStatus.FAILED
        assert not context.captured.exists()

    def test_failure_is_reported(self, tmp_path, builtin_dir, caplog):
        write_plugin(builtin_dir, "explode", FAILING_PLUGIN)
        invoker = PluginInvoker([builtin_dir])
        with caplog.at_level(logging.ERROR):
            result = invoker.invoke(entry(name="explode"), make_context(tmp_path))
        assert result.failed is True
        assert result.error == "boom from explode"
        assert isinstance(result.exception, RuntimeError)
        assert "Plugin 'explode' failed: boom from explode" in caplog.text

    def test_module_exec_error_is_a_failure(self, tmp_path, builtin_dir):
        write_plugin(builtin_dir, "badimport", "import not_a_real_module_xyz\n")
        result = PluginInvoker([builtin_dir]).invoke(entry(name="badimport"), make_context(tmp_path))
        assert result.status == InvocationStatus.FAILED
        assert isinstance(result.exception, ImportError)

    def test_sys_exit_in_run_is_a_failure(self, tmp_path, builtin_dir, caplog):
        write_plugin(
            builtin_dir,
            "quitter",
            """
            import sys

            def run(settings):
                sys.exit(3)
            """,
        )
        with caplog.at_level(logging.ERROR):
            result = PluginInvoker([builtin_dir]).invoke(
                entry(name="quitter"), make_context(tmp_path)
            )
        assert result.status == InvocationStatus.FAILED
        assert isinstance(result.exception, SystemExit)
        assert result.error == "plugin called sys.exit(3)"
        assert "Plugin 'quitter' failed: plugin called sys.exit(3)" in caplog.text

    def test_sys_exit_at_import_is_a_failure(self, tmp_path, builtin_dir):
        write_plugin(builtin_dir, "earlyexit", "import sys\nsys.exit('no config')\n")
        result = PluginInvoker([builtin_dir]).invoke(entry(name="earlyexit"), make_context(tmp_path))
        assert result.status == InvocationStatus.FAILED
        assert result.error == "plugin called sys.exit('no config')"
        assert not any(name.startswith("shipwright_plugin_earlyexit") for name in sys.modules)

    def test_override_directory_used(self, tmp_path, builtin_dir, override_dir):
        write_plugin(override_dir, "custom", CAPTURE_PLUGIN)
        context = make_context(tmp_path)
        result = PluginInvoker([builtin_dir, override_dir]).invoke(entry(name="custom"), context)
        assert result.source == override_dir / "custom.py"
