"""Build the editor invocation and its environment.

The editor is told to jump to the requested line and, right before it
exits, to write its current cursor line into the cursor file so the host
can restore the position afterwards.
"""

from __future__ import annotations

import contextlib
import os
from collections.abc import Mapping

CURSOR_HOOK = "autocmd VimLeave * call writefile([line('.')], '{path}')"


def build_editor_args(file_path: str, line_number: int, cursor_file: str) -> list[str]:
    """Arguments passed to the editor after its binary path."""
    args: list[str] = []
    if line_number > 0:
        args.append(f"+{line_number}")
    args.extend(["-c", CURSOR_HOOK.format(path=cursor_file), file_path])
    return args


def build_environment(
    shell_path: str,
    *,
    term: str = "xterm-256color",
    colorterm: str = "truecolor",
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Host environment with PATH swapped for the login-shell PATH.

    An empty ``shell_path`` keeps the inherited PATH.
    """
    env = dict(os.environ if base is None else base)
    if shell_path:
        env["PATH"] = shell_path
    env["TERM"] = term
    env["COLORTERM"] = colorterm
    return env


def read_cursor_line(cursor_file: str) -> int:
    """Line number the editor left in the cursor file, 0 if unavailable.

    The file is removed once read.
    """
    try:
        with open(cursor_file, encoding="utf-8") as f:
            raw = f.read()
    except OSError:
        return 0

    remove_quietly(cursor_file)
    try:
        return int(raw.strip())
    except ValueError:
        return 0


def remove_quietly(path: str) -> None:
    with contextlib.suppress(OSError):
        os.remove(path)
