"""Low-level pseudo-terminal helpers (POSIX)."""

from __future__ import annotations

import fcntl
import os
import pty
import struct
import termios


def open_pty(cols: int, rows: int) -> tuple[int, int]:
    """Allocate a pty pair already sized to ``cols`` x ``rows``.

    Returns:
        (master_fd, slave_fd)
    """
    master_fd, slave_fd = pty.openpty()
    try:
        set_winsize(master_fd, cols, rows)
    except OSError:
        os.close(master_fd)
        os.close(slave_fd)
        raise
    return master_fd, slave_fd


def set_winsize(fd: int, cols: int, rows: int) -> None:
    """Apply a window size; the kernel signals SIGWINCH to the foreground group."""
    winsize = struct.pack("HHHH", max(1, rows), max(1, cols), 0, 0)
    fcntl.ioctl(fd, termios.TIOCSWINSZ, winsize)


def get_winsize(fd: int) -> tuple[int, int]:
    """Current (cols, rows) of a terminal fd."""
    packed = fcntl.ioctl(fd, termios.TIOCGWINSZ, struct.pack("HHHH", 0, 0, 0, 0))
    rows, cols, _, _ = struct.unpack("HHHH", packed)
    return cols, rows


def acquire_controlling_tty() -> None:
    """Run in the child after setsid(): make its stdin pty the controlling tty."""
    fcntl.ioctl(0, termios.TIOCSCTTY, 0)


def write_all(fd: int, data: bytes) -> None:
    """Write every byte; os.write may accept only part of a large buffer."""
    view = memoryview(data)
    while view:
        written = os.write(fd, view)
        view = view[written:]
