"""Locate the editor binary and the user's full login-shell PATH.

Hosts launched from a desktop session often inherit a minimal environment
without the user's shell customizations, so neither the editor nor the
tools it spawns (LSPs, formatters) are reliably on the inherited PATH.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from collections.abc import Iterable

from editbridge.logging import get_logger

log = get_logger("terminal")

# Searched in order when the command isn't on the host's PATH
_SYSTEM_BIN_DIRS = (
    "/opt/homebrew/bin",  # Apple Silicon Homebrew
    "/usr/local/bin",  # Intel Homebrew / manual installs
    "/run/current-system/sw/bin",  # NixOS
)
_HOME_BIN_DIRS = (
    ".local/bin",
    ".nix-profile/bin",
)

SHELL_PATH_TIMEOUT = 10.0


def candidate_paths(name: str, search_dirs: Iterable[str] = ()) -> list[str]:
    """Fallback locations for ``name``, highest priority first."""
    candidates = [os.path.join(d, name) for d in search_dirs]
    candidates.extend(os.path.join(d, name) for d in _SYSTEM_BIN_DIRS)
    home = os.path.expanduser("~")
    if home != "~":
        candidates.extend(os.path.join(home, d, name) for d in _HOME_BIN_DIRS)
    return candidates


def resolve_editor(name: str, search_dirs: Iterable[str] = ()) -> str:
    """Find the absolute path for the editor binary.

    Absolute paths are returned unchanged. Otherwise the host PATH is
    searched, then the common install locations. If nothing matches the
    bare name is returned so that starting the process fails with a clear
    "command not found" instead of failing here.
    """
    if os.path.isabs(name):
        return name

    found = shutil.which(name)
    if found:
        return found

    for candidate in candidate_paths(name, search_dirs):
        if os.path.exists(candidate):
            log.debug("Resolved editor %s via fallback %s", name, candidate)
            return candidate

    log.debug("Editor %s not found; deferring failure to process start", name)
    return name


def resolve_shell_path(shell: str | None = None, timeout: float = SHELL_PATH_TIMEOUT) -> str:
    """Ask the user's login shell for its fully initialized PATH.

    Returns an empty string on any failure, in which case the editor
    simply inherits the host's PATH.
    """
    shell = shell or os.environ.get("SHELL") or "/bin/zsh"
    try:
        result = subprocess.run(
            [shell, "-lc", "echo $PATH"],
            stdin=subprocess.DEVNULL,
            capture_output=True,
            timeout=timeout,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as e:
        log.debug("Could not resolve login shell PATH via %s: %s", shell, e)
        return ""
    return result.stdout.decode("utf-8", errors="replace").strip()
