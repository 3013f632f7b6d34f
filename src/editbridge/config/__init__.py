"""Configuration management for editbridge.

Provides hierarchical YAML-based configuration with:
- System-level config (/etc/editbridge/ or %PROGRAMDATA%)
- User-level config (~/.config/editbridge/ or %APPDATA%)
- Project-level config ($project_root/.editbridge/)
- Environment variable overrides (EDITOR, SHELL, EB_LOG)

Example usage:
    from editbridge.config import load_config

    config = load_config(project_root="/path/to/notes")
    print(config.editor.command)
"""

from editbridge.config.loader import (
    get_config,
    load_config,
    on_config_reload,
    reload_config,
    reset_config,
)
from editbridge.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from editbridge.config.schema import (
    Config,
    EditorConfig,
    LoggingConfig,
    WatchConfig,
)

__all__ = [
    "Config",
    "load_config",
    "get_config",
    "reload_config",
    "reset_config",
    "on_config_reload",
    "EditorConfig",
    "WatchConfig",
    "LoggingConfig",
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
]
