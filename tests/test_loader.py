"""Tests for plugin file resolution and loading."""

import pytest

from conftest import write_plugin
from shipwright.errors import PluginLoadError
from shipwright.plugins.loader import (
    discover_plugins,
    load_plugin_entrypoint,
    resolve_plugin_path,
)


class TestResolvePluginPath:
    def test_builtin_wins_over_override(self, builtin_dir, override_dir):
        builtin = write_plugin(builtin_dir, "compress", "def run(settings): pass\n")
        write_plugin(override_dir, "compress", "def run(settings): pass\n")
        assert resolve_plugin_path("compress", [builtin_dir, override_dir]) == builtin

    def test_override_only(self, builtin_dir, override_dir):
        custom = write_plugin(override_dir, "notify", "def run(settings): pass\n")
        assert resolve_plugin_path("notify", [builtin_dir, override_dir]) == custom

    def test_not_found(self, builtin_dir, override_dir):
        assert resolve_plugin_path("missing", [builtin_dir, override_dir]) is None

    @pytest.mark.parametrize("name", ["", "../evil", "with-dash", "_private", "a.b"])
    def test_invalid_names(self, builtin_dir, name):
        assert resolve_plugin_path(name, [builtin_dir]) is None

    def test_missing_directory_is_ignored(self, tmp_path, override_dir):
        custom = write_plugin(override_dir, "notify", "def run(settings): pass\n")
        assert resolve_plugin_path("notify", [tmp_path / "absent", override_dir]) == custom


class TestLoadPluginEntrypoint:
    def test_loads_run(self, builtin_dir):
        path = write_plugin(
            builtin_dir,
            "echo",
            """
            def run(settings):
                settings["seen"] = True
            """,
        )
        entrypoint = load_plugin_entrypoint(path)
        settings = {}
        entrypoint(settings)
        assert settings == {"seen": True}

    def test_each_load_binds_its_own_run(self, builtin_dir, override_dir):
        first = write_plugin(builtin_dir, "first", "def run(settings): return 'first'\n")
        second = write_plugin(override_dir, "second", "def run(settings): return 'second'\n")
        run_first = load_plugin_entrypoint(first)
        run_second = load_plugin_entrypoint(second)
        assert run_first({}) == "first"
        assert run_second({}) == "second"

    def test_missing_run_does_not_reuse_previous(self, builtin_dir):
        good = write_plugin(builtin_dir, "good", "def run(settings): return 'good'\n")
        empty = write_plugin(builtin_dir, "empty", "VALUE = 1\n")
        load_plugin_entrypoint(good)
        with pytest.raises(PluginLoadError, match="run"):
            load_plugin_entrypoint(empty)

    def test_run_not_callable(self, builtin_dir):
        path = write_plugin(builtin_dir, "odd", "run = 42\n")
        with pytest.raises(PluginLoadError):
            load_plugin_entrypoint(path)

    def test_reload_picks_up_changes(self, builtin_dir):
        path = write_plugin(builtin_dir, "changing", "def run(settings): return 1\n")
        assert load_plugin_entrypoint(path)({}) == 1
        write_plugin(builtin_dir, "changing", "def run(settings): return 'changed'\n")
        assert load_plugin_entrypoint(path)({}) == "changed"

    def test_module_error_propagates(self, builtin_dir):
        path = write_plugin(builtin_dir, "broken", "raise ImportError('no such lib')\n")
        with pytest.raises(ImportError, match="no such lib"):
            load_plugin_entrypoint(path)

    def test_non_python_file(self, tmp_path):
        path = tmp_path / "plugin.txt"
        path.write_text("def run(settings): pass\n")
        with pytest.raises(PluginLoadError):
            load_plugin_entrypoint(path)


class TestDiscoverPlugins:
    def test_lists_plugins_with_precedence(self, builtin_dir, override_dir):
        builtin = write_plugin(builtin_dir, "compress", "def run(settings): pass\n")
        write_plugin(builtin_dir, "_helpers", "X = 1\n")
        write_plugin(override_dir, "compress", "def run(settings): pass\n")
        custom = write_plugin(override_dir, "notify", "def run(settings): pass\n")

        found = discover_plugins([builtin_dir, override_dir])
        assert found == {"compress": builtin, "notify": custom}

    def test_missing_directories(self, tmp_path):
        assert discover_plugins([tmp_path / "nope"]) == {}
