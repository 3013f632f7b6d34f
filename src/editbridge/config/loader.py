"""Loading config.yaml layers into a typed Config.

Layers are read from the paths in :mod:`editbridge.config.paths`, merged,
topped with environment overrides (EDITOR, SHELL, EB_LOG), and converted
section by section. A broken or unreadable file counts as empty; a bad
value falls back to its default. Only the global config (no project root)
is cached.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from editbridge.config.merge import merge_configs
from editbridge.config.paths import get_config_paths
from editbridge.config.schema import (
    DEFAULT_COLS,
    DEFAULT_EDITOR,
    DEFAULT_READ_BUFFER_SIZE,
    DEFAULT_ROWS,
    DEFAULT_SETTLE_DELAY,
    DEFAULT_SHELL,
    Config,
    EditorConfig,
    LoggingConfig,
    WatchConfig,
    default_cursor_file,
)

# Not editbridge.logging: config is loaded before logging is set up
_log = logging.getLogger("editbridge.config")

_SECTIONS = ("editor", "watch", "logging")

# Environment variable -> (section, key)
_ENV_KEYS = {
    "EDITOR": ("editor", "command"),
    "SHELL": ("editor", "shell"),
    "EB_LOG": ("logging", "file"),
}

_cached_config: Config | None = None
_reload_callbacks: list[Callable[[Config], None]] = []


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Parse one layer. Missing, unreadable or non-mapping files give {}."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as e:
        _log.warning("Cannot read %s: %s", path, e)
        return {}

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}

    if not isinstance(data, dict):
        return {}
    _log.debug("Loaded config from %s", path)
    return data


def env_overrides() -> dict[str, Any]:
    """Config layer built from the environment; highest priority."""
    overrides: dict[str, Any] = {}
    for var, (section, key) in _ENV_KEYS.items():
        value = os.environ.get(var)
        if value:
            overrides.setdefault(section, {})[key] = value
    return overrides


def _as_int(value: Any, default: int, minimum: int | None = None) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        _log.warning("Expected an integer, got %r; using %d", value, default)
        return default
    if minimum is not None and number < minimum:
        _log.warning("Expected an integer >= %d, got %d; using %d", minimum, number, default)
        return default
    return number


def _as_seconds(value: Any, default: float) -> float:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        seconds = -1.0
    if seconds < 0:
        _log.warning("Expected a non-negative number of seconds, got %r; using %s", value, default)
        return default
    return seconds


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name)
    return section if isinstance(section, dict) else {}


def _editor_config(section: dict[str, Any]) -> EditorConfig:
    search_dirs = section.get("search_dirs")
    if not isinstance(search_dirs, list):
        search_dirs = []

    return EditorConfig(
        command=section.get("command") or DEFAULT_EDITOR,
        shell=section.get("shell") or DEFAULT_SHELL,
        term=section.get("term", "xterm-256color"),
        colorterm=section.get("colorterm", "truecolor"),
        cols=_as_int(section.get("cols", DEFAULT_COLS), DEFAULT_COLS, minimum=1),
        rows=_as_int(section.get("rows", DEFAULT_ROWS), DEFAULT_ROWS, minimum=1),
        read_buffer_size=_as_int(
            section.get("read_buffer_size", DEFAULT_READ_BUFFER_SIZE),
            DEFAULT_READ_BUFFER_SIZE,
            minimum=1,
        ),
        cursor_file=section.get("cursor_file") or default_cursor_file(),
        search_dirs=[d for d in search_dirs if isinstance(d, str)],
        resolve_shell_path=bool(section.get("resolve_shell_path", True)),
    )


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert the merged layers into a Config; unknown sections go to ``extra``."""
    watch = _section(data, "watch")
    log_section = _section(data, "logging")

    return Config(
        editor=_editor_config(_section(data, "editor")),
        watch=WatchConfig(
            enabled=bool(watch.get("enabled", True)),
            trim_content=bool(watch.get("trim_content", True)),
            settle_delay=_as_seconds(
                watch.get("settle_delay", DEFAULT_SETTLE_DELAY), DEFAULT_SETTLE_DELAY
            ),
        ),
        logging=LoggingConfig(
            level=log_section.get("level"),
            verbose=log_section.get("verbose"),
            file=log_section.get("file"),
        ),
        extra={k: v for k, v in data.items() if k not in _SECTIONS},
    )


def load_config(project_root: str | None = None, reload: bool = False) -> Config:
    """Merge system, user and project files plus the environment.

    Args:
        project_root: Directory holding ``.editbridge/config.yaml``. A
            project config is never cached.
        reload: Ignore the cached global config.
    """
    global _cached_config

    if project_root is None and _cached_config is not None and not reload:
        return _cached_config

    layers = [load_yaml_file(path) for path in get_config_paths(project_root)]
    layers.append(env_overrides())
    config = dict_to_config(merge_configs(*layers))

    if project_root is None:
        _cached_config = config
    return config


def get_config() -> Config:
    """The global config, loaded on first use."""
    return _cached_config if _cached_config is not None else load_config()


def reset_config() -> None:
    """Forget the cached global config."""
    global _cached_config
    _cached_config = None


def reload_config(project_root: str | None = None) -> Config:
    """Load config again and hand it to every registered callback."""
    config = load_config(project_root=project_root, reload=True)
    for callback in list(_reload_callbacks):
        try:
            callback(config)
        except Exception as e:
            _log.warning("Config reload callback failed: %s", e)
    return config


def on_config_reload(callback: Callable[[Config], None]) -> Callable[[], None]:
    """Call ``callback`` after each reload_config(). Returns an unregister function."""
    _reload_callbacks.append(callback)

    def unregister() -> None:
        if callback in _reload_callbacks:
            _reload_callbacks.remove(callback)

    return unregister
