"""Errors raised by the embedded editor session manager."""

from __future__ import annotations


class EditorError(Exception):
    """Base class for editor session errors."""


class NoActiveSessionError(EditorError):
    """Raised when input is sent while no editor session is running."""

    def __init__(self) -> None:
        super().__init__("no active terminal session")


class EditorStartError(EditorError):
    """The pseudo-terminal or the editor process could not be started.

    The underlying OSError is chained as ``__cause__``. A missing binary is
    reported as "command not found" so misconfiguration is obvious where
    the host surfaces it ("editor could not be opened").
    """

    def __init__(self, command: str, reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"start editor {command!r}: {reason}")
