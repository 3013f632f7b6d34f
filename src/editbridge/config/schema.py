"""Configuration schema dataclasses for editbridge.

Defines the structure of configuration at all levels (system, user, project).
All fields carry defaults so partial configs merge together cleanly.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from typing import Any

DEFAULT_EDITOR = "nvim"
DEFAULT_SHELL = "/bin/zsh"
DEFAULT_COLS = 80
DEFAULT_ROWS = 24
DEFAULT_READ_BUFFER_SIZE = 32768
CURSOR_FILENAME = "notes_nvim_cursor"
DEFAULT_SETTLE_DELAY = 0.2


def default_cursor_file() -> str:
    """Process-wide sentinel path the editor writes its last cursor line to."""
    return os.path.join(tempfile.gettempdir(), CURSOR_FILENAME)


@dataclass
class EditorConfig:
    """Embedded editor session configuration.

    Example config.yaml:
        editor:
          command: nvim
          shell: /bin/bash
          cols: 120
          rows: 40
          search_dirs:
            - /opt/tools/bin
    """

    command: str = DEFAULT_EDITOR  # Overridden by $EDITOR
    shell: str = DEFAULT_SHELL  # Login shell used to resolve the full PATH
    term: str = "xterm-256color"
    colorterm: str = "truecolor"
    cols: int = DEFAULT_COLS  # Initial pty size until the first resize
    rows: int = DEFAULT_ROWS
    read_buffer_size: int = DEFAULT_READ_BUFFER_SIZE
    cursor_file: str = field(default_factory=default_cursor_file)
    search_dirs: list[str] = field(default_factory=list)  # Searched before built-ins
    resolve_shell_path: bool = True


@dataclass
class WatchConfig:
    """Live-sync file watching configuration."""

    enabled: bool = True
    trim_content: bool = True  # Strip surrounding whitespace before publishing
    settle_delay: float = DEFAULT_SETTLE_DELAY  # Quiet seconds before reading a modified file


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0..4, takes precedence over level
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    editor: EditorConfig = field(default_factory=EditorConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Unknown top-level sections are preserved for the host application
    extra: dict[str, Any] = field(default_factory=dict)
