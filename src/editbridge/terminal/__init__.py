"""Embedded editor sessions on a pseudo-terminal (POSIX).

Provides EditorSessionManager, which runs one external editor at a time
and relays raw bytes between it and the host.
"""

from editbridge.terminal.errors import (
    EditorError,
    EditorStartError,
    NoActiveSessionError,
)
from editbridge.terminal.manager import EditorSessionManager, SessionInfo
from editbridge.terminal.resolve import resolve_editor, resolve_shell_path

__all__ = [
    "EditorError",
    "EditorSessionManager",
    "EditorStartError",
    "NoActiveSessionError",
    "SessionInfo",
    "resolve_editor",
    "resolve_shell_path",
]
