"""Where editbridge looks for config.yaml.

Three locations are consulted, lowest priority first:

    system   /etc/editbridge/            %PROGRAMDATA%\\editbridge\\
    user     $XDG_CONFIG_HOME/editbridge/, ~/.config/editbridge/ or
             ~/.editbridge/              %APPDATA%\\editbridge\\
    project  <project>/.editbridge/

None of the returned files has to exist.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
APP_NAME = "editbridge"
SHORT_NAME = ".editbridge"


def _windows_dir(env_var: str) -> Path | None:
    base = os.environ.get(env_var)
    return Path(base) / APP_NAME if base else None


def _user_dir() -> Path:
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME

    home = Path.home()
    if (home / ".config").exists():
        return home / ".config" / APP_NAME
    return home / SHORT_NAME


def get_system_config_path() -> Path | None:
    """System-wide config file, or None if the platform gives no location."""
    if sys.platform == "win32":
        directory = _windows_dir("PROGRAMDATA")
    else:
        directory = Path("/etc") / APP_NAME
    return directory / CONFIG_FILENAME if directory else None


def get_user_config_path() -> Path | None:
    """Per-user config file, or None if the platform gives no location."""
    directory = _windows_dir("APPDATA") if sys.platform == "win32" else _user_dir()
    return directory / CONFIG_FILENAME if directory else None


def get_project_config_path(project_root: str) -> Path:
    return Path(project_root) / SHORT_NAME / CONFIG_FILENAME


def get_config_paths(project_root: str | None = None) -> list[Path]:
    """Config files to merge, lowest priority first (system, user, project)."""
    candidates = [get_system_config_path(), get_user_config_path()]
    if project_root:
        candidates.append(get_project_config_path(project_root))
    return [path for path in candidates if path is not None]
