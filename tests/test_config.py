"""Tests for the configuration module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from editbridge.config import (
    Config,
    get_config,
    load_config,
    on_config_reload,
    reload_config,
    reset_config,
)
from editbridge.config.merge import deep_merge, merge_configs
from editbridge.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from editbridge.config.schema import default_cursor_file


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's own config and editor settings out of tests."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.delenv("EDITOR", raising=False)
    monkeypatch.delenv("SHELL", raising=False)
    monkeypatch.delenv("EB_LOG", raising=False)


class TestDeepMerge:
    """Test the deep merge algorithm."""

    def test_simple_override(self) -> None:
        assert deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4}) == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self) -> None:
        base = {"editor": {"command": "vim", "cols": 80}}
        result = deep_merge(base, {"editor": {"cols": 120}})
        assert result["editor"] == {"command": "vim", "cols": 120}

    def test_none_does_not_override(self) -> None:
        assert deep_merge({"a": 1}, {"a": None}) == {"a": 1}

    def test_list_replaced_not_merged(self) -> None:
        base = {"editor": {"search_dirs": ["/a", "/b"]}}
        result = deep_merge(base, {"editor": {"search_dirs": ["/c"]}})
        assert result["editor"]["search_dirs"] == ["/c"]

    def test_inputs_not_mutated(self) -> None:
        base = {"editor": {"cols": 80}}
        deep_merge(base, {"editor": {"cols": 100}})
        assert base == {"editor": {"cols": 80}}

    def test_merge_configs_multiple(self) -> None:
        assert merge_configs({"a": 1, "b": 2}, {"b": 3}, {}, {"c": 4}) == {"a": 1, "b": 3, "c": 4}


class TestConfigPaths:
    """Test platform-aware path resolution."""

    def test_windows_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.setenv("PROGRAMDATA", "C:\\ProgramData")

        path = get_system_config_path()
        assert path is not None
        assert "ProgramData" in str(path)
        assert "editbridge" in str(path)

    def test_windows_user_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.setenv("APPDATA", "C:\\Users\\Test\\AppData\\Roaming")

        path = get_user_config_path()
        assert path is not None
        assert "AppData" in str(path)

    def test_unix_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        assert get_system_config_path() == Path("/etc/editbridge/config.yaml")

    def test_unix_user_path_xdg(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", "/home/test/.config-custom")
        assert get_user_config_path() == Path("/home/test/.config-custom/editbridge/config.yaml")

    def test_unix_user_path_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert get_user_config_path() == tmp_path / ".editbridge" / "config.yaml"

    def test_project_config_path(self) -> None:
        path = get_project_config_path("/home/user/notes")
        assert path == Path("/home/user/notes/.editbridge/config.yaml")

    def test_get_config_paths_order(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")

        paths = get_config_paths(project_root="/project")
        assert len(paths) == 3
        assert "etc" in paths[0].parts
        assert "xdg" in paths[1].parts
        assert "project" in paths[2].parts


class TestConfigLoading:
    """Test configuration loading."""

    @pytest.fixture
    def project(self, tmp_path: Path) -> Path:
        config_dir = tmp_path / "notes" / ".editbridge"
        config_dir.mkdir(parents=True)
        return config_dir.parent

    def write_config(self, project: Path, text: str) -> None:
        (project / ".editbridge" / "config.yaml").write_text(text)

    def test_defaults(self, tmp_path: Path) -> None:
        config = load_config(project_root=str(tmp_path))
        assert isinstance(config, Config)
        assert config.editor.command == "nvim"
        assert config.editor.shell == "/bin/zsh"
        assert (config.editor.cols, config.editor.rows) == (80, 24)
        assert config.editor.read_buffer_size == 32768
        assert config.editor.cursor_file == default_cursor_file()
        assert config.editor.resolve_shell_path is True
        assert config.watch.enabled is True
        assert config.watch.trim_content is True

    def test_load_yaml_config(self, project: Path) -> None:
        self.write_config(
            project,
            """
editor:
  command: hx
  cols: 132
  rows: 43
  search_dirs:
    - /opt/tools/bin
watch:
  trim_content: false
logging:
  level: debug
""",
        )
        config = load_config(project_root=str(project))
        assert config.editor.command == "hx"
        assert (config.editor.cols, config.editor.rows) == (132, 43)
        assert config.editor.search_dirs == ["/opt/tools/bin"]
        assert config.watch.trim_content is False
        assert config.logging.level == "debug"

    def test_user_and_project_layers(self, project: Path, tmp_path: Path) -> None:
        user_dir = tmp_path / "xdg" / "editbridge"
        user_dir.mkdir(parents=True)
        (user_dir / "config.yaml").write_text("editor:\n  command: vim\n  cols: 100\n")
        self.write_config(project, "editor:\n  cols: 120\n")

        config = load_config(project_root=str(project))
        assert config.editor.command == "vim"
        assert config.editor.cols == 120

    def test_env_overrides_config(self, project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        self.write_config(project, "editor:\n  command: vim\n  shell: /bin/sh\n")
        monkeypatch.setenv("EDITOR", "micro")
        monkeypatch.setenv("SHELL", "/bin/bash")
        monkeypatch.setenv("EB_LOG", "/tmp/editbridge.log")

        config = load_config(project_root=str(project))
        assert config.editor.command == "micro"
        assert config.editor.shell == "/bin/bash"
        assert config.logging.file == "/tmp/editbridge.log"

    def test_invalid_yaml_uses_defaults(self, project: Path) -> None:
        self.write_config(project, "invalid: yaml: :")
        config = load_config(project_root=str(project))
        assert config.editor.command == "nvim"

    def test_invalid_number_uses_default(self, project: Path) -> None:
        self.write_config(project, "editor:\n  cols: wide\n")
        config = load_config(project_root=str(project))
        assert config.editor.cols == 80

    @pytest.mark.parametrize("size", [0, -1])
    def test_non_positive_read_buffer_uses_default(self, project: Path, size: int) -> None:
        self.write_config(project, f"editor:\n  read_buffer_size: {size}\n")
        config = load_config(project_root=str(project))
        assert config.editor.read_buffer_size == 32768

    def test_zero_width_uses_default(self, project: Path) -> None:
        self.write_config(project, "editor:\n  cols: 0\n  rows: 0\n")
        config = load_config(project_root=str(project))
        assert (config.editor.cols, config.editor.rows) == (80, 24)

    def test_settle_delay(self, project: Path) -> None:
        self.write_config(project, "watch:\n  settle_delay: 0.5\n")
        config = load_config(project_root=str(project))
        assert config.watch.settle_delay == 0.5

    @pytest.mark.parametrize("value", ["-1", "soon"])
    def test_invalid_settle_delay_uses_default(self, project: Path, value: str) -> None:
        self.write_config(project, f"watch:\n  settle_delay: {value}\n")
        config = load_config(project_root=str(project))
        assert config.watch.settle_delay == 0.2

    def test_extra_fields_preserved(self, project: Path) -> None:
        self.write_config(project, "canvas:\n  grid: 8\n")
        config = load_config(project_root=str(project))
        assert config.extra == {"canvas": {"grid": 8}}


class TestConfigCaching:
    """Test config caching behavior."""

    def test_get_config_caches(self) -> None:
        assert get_config() is get_config()

    def test_reset_clears_cache(self) -> None:
        config1 = get_config()
        reset_config()
        assert get_config() is not config1

    def test_project_config_not_cached(self, tmp_path: Path) -> None:
        project_config = load_config(project_root=str(tmp_path))
        assert project_config is not get_config()

    def test_reload_notifies_callbacks(self) -> None:
        seen: list[Config] = []
        unregister = on_config_reload(seen.append)
        try:
            config = reload_config()
        finally:
            unregister()
        assert seen == [config]

        reload_config()
        assert len(seen) == 1

    def test_reload_callback_errors_are_contained(self) -> None:
        def broken(config: Config) -> None:
            raise RuntimeError("boom")

        unregister = on_config_reload(broken)
        try:
            assert isinstance(reload_config(), Config)
        finally:
            unregister()
