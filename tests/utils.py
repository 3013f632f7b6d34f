"""Shared test helpers for editbridge tests."""

from __future__ import annotations

import os
import stat
import sys
import time
from collections.abc import Callable
from pathlib import Path

import pytest

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="requires a POSIX pty")

# Parses the editor invocation the way the real editor would see it:
#   [+LINE] -c "autocmd VimLeave * call writefile([line('.')], 'CURSOR')" FILE
# and exposes $line, $cursor_file and $file to the script body.
EDITOR_PROLOGUE = r"""#!/bin/sh
line=1
hook=""
file=""
for arg in "$@"; do
  case "$arg" in
    +*) line="${arg#+}" ;;
    -c) ;;
    autocmd*) hook="$arg" ;;
    *) file="$arg" ;;
  esac
done
cursor_file=$(printf '%s' "$hook" | sed "s/.*], '\(.*\)')\$/\1/")
"""


def write_script(path: Path, body: str) -> str:
    """Write an executable shell script and return its absolute path."""
    path.write_text(body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.02) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True
