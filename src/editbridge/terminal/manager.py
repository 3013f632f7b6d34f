"""Embedded editor session manager.

Runs one external full-screen editor attached to a pseudo-terminal and
relays raw bytes in both directions:

- keystrokes from the host go to the pty via write()
- everything the editor renders is streamed to the data callback
- when the editor exits, the cursor line it left behind is passed to the
  exit callback so the host can restore the position

At most one session exists per manager. Opening a file while a session is
running kills the old editor first.
"""

from __future__ import annotations

import contextlib
import errno
import os
import select
import subprocess
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from editbridge.config.schema import (
    DEFAULT_COLS,
    DEFAULT_EDITOR,
    DEFAULT_READ_BUFFER_SIZE,
    DEFAULT_ROWS,
    default_cursor_file,
)
from editbridge.logging import get_logger
from editbridge.terminal.command import (
    build_editor_args,
    build_environment,
    read_cursor_line,
    remove_quietly,
)
from editbridge.terminal.errors import EditorStartError, NoActiveSessionError
from editbridge.terminal.ptyio import (
    acquire_controlling_tty,
    open_pty,
    set_winsize,
    write_all,
)
from editbridge.terminal.resolve import resolve_editor, resolve_shell_path

if TYPE_CHECKING:
    from editbridge.config.schema import Config

log = get_logger("terminal")

DataCallback = Callable[[bytes], None]
ExitCallback = Callable[[int], None]

# How often an idle reader re-checks whether its session was stopped
READ_POLL_INTERVAL = 0.1

# Upper bound for reaping an editor whose pty already closed
EXIT_REAP_TIMEOUT = 5.0


@dataclass
class _Session:
    """One run of the editor process plus its pty."""

    process: subprocess.Popen[bytes]
    master_fd: int
    file_path: str
    stop: threading.Event = field(default_factory=threading.Event)
    reader: threading.Thread | None = None


@dataclass(frozen=True)
class SessionInfo:
    """Point-in-time snapshot of the manager state."""

    running: bool
    pid: int | None
    file_path: str | None
    cols: int
    rows: int
    editor: str


class EditorSessionManager:
    """Owns the single embedded editor session for a host.

    All public methods are safe to call from any thread. Callbacks run on
    the session's reader thread.

    Example:
        manager = EditorSessionManager(on_data=send_to_ui, on_exit=restore_cursor)
        manager.resize(120, 40)
        manager.open_file("notes/todo.md", line_number=12)
        manager.write(b":wq\\r")
    """

    def __init__(
        self,
        on_data: DataCallback | None = None,
        on_exit: ExitCallback | None = None,
        *,
        command: str | None = None,
        shell: str | None = None,
        cursor_file: str | None = None,
        cols: int = DEFAULT_COLS,
        rows: int = DEFAULT_ROWS,
        term: str = "xterm-256color",
        colorterm: str = "truecolor",
        read_buffer_size: int = DEFAULT_READ_BUFFER_SIZE,
        search_dirs: Iterable[str] = (),
        resolve_shell: bool = True,
    ) -> None:
        """Initialize the manager.

        Args:
            on_data: Receives each chunk of editor output.
            on_exit: Receives the recovered cursor line (0 if unknown),
                once per session.
            command: Editor command; defaults to $EDITOR, then "nvim".
            shell: Login shell used to resolve the full PATH.
            cursor_file: Sentinel file the editor writes its cursor line to.
            cols: Initial pty width until the first resize().
            rows: Initial pty height until the first resize().
            term: TERM for the editor.
            colorterm: COLORTERM for the editor.
            read_buffer_size: Maximum bytes per output chunk.
            search_dirs: Extra directories searched for the editor binary.
            resolve_shell: Resolve the login-shell PATH once, now.
        """
        self._on_data = on_data
        self._on_exit = on_exit

        self._lock = threading.Lock()
        self._session: _Session | None = None
        self._pending_cols = max(1, cols)
        self._pending_rows = max(1, rows)

        self._editor = resolve_editor(
            command or os.environ.get("EDITOR") or DEFAULT_EDITOR, search_dirs
        )
        self._shell_path = resolve_shell_path(shell) if resolve_shell else ""
        self._cursor_file = cursor_file or default_cursor_file()
        self._term = term
        self._colorterm = colorterm
        self._read_buffer_size = max(1, read_buffer_size)

    @classmethod
    def from_config(
        cls,
        config: Config,
        on_data: DataCallback | None = None,
        on_exit: ExitCallback | None = None,
    ) -> EditorSessionManager:
        """Build a manager from the ``editor`` config section."""
        editor = config.editor
        return cls(
            on_data,
            on_exit,
            command=editor.command,
            shell=editor.shell,
            cursor_file=editor.cursor_file,
            cols=editor.cols,
            rows=editor.rows,
            term=editor.term,
            colorterm=editor.colorterm,
            read_buffer_size=editor.read_buffer_size,
            search_dirs=editor.search_dirs,
            resolve_shell=editor.resolve_shell_path,
        )

    @property
    def editor(self) -> str:
        """Resolved editor binary (may be a bare name if not found)."""
        return self._editor

    @property
    def shell_path(self) -> str:
        """PATH reported by the login shell, or "" if resolution failed."""
        return self._shell_path

    @property
    def cursor_file(self) -> str:
        return self._cursor_file

    def open_file(self, file_path: str, line_number: int = 0) -> None:
        """Start the editor on ``file_path``, replacing any running session.

        Args:
            file_path: File to edit (absolute or relative to the host cwd).
            line_number: Line to place the cursor on; <= 0 opens at the top.

        Raises:
            EditorStartError: The pty or the editor process could not be
                started. No session is left running.
        """
        with self._lock:
            if self._session is not None:
                log.debug("Replacing running session on %s", self._session.file_path)
                self._terminate_locked()

            remove_quietly(self._cursor_file)

            argv = [
                self._editor,
                *build_editor_args(file_path, line_number, self._cursor_file),
            ]
            env = build_environment(
                self._shell_path, term=self._term, colorterm=self._colorterm
            )
            cols, rows = self._pending_cols, self._pending_rows

            try:
                master_fd, slave_fd = open_pty(cols, rows)
            except OSError as e:
                raise EditorStartError(self._editor, f"open pty: {e}") from e

            # Other threads are running: the preexec hook runs in the forked child
            # and must stay a single ioctl that takes no locks
            try:
                process = subprocess.Popen(
                    argv,
                    stdin=slave_fd,
                    stdout=slave_fd,
                    stderr=slave_fd,
                    env=env,
                    start_new_session=True,
                    preexec_fn=acquire_controlling_tty,
                )
            except (OSError, subprocess.SubprocessError) as e:
                os.close(master_fd)
                if isinstance(e, FileNotFoundError):
                    reason = f"command not found: {self._editor}"
                else:
                    reason = str(e)
                raise EditorStartError(self._editor, reason) from e
            finally:
                # The child holds its own copy of the slave end
                os.close(slave_fd)

            session = _Session(process=process, master_fd=master_fd, file_path=file_path)
            session.reader = threading.Thread(
                target=self._read_loop,
                args=(session,),
                name=f"editbridge-pty-{process.pid}",
                daemon=True,
            )
            self._session = session
            session.reader.start()

        log.info(
            "Editor started: %s on %s (pid=%d, %dx%d, line=%d)",
            self._editor, file_path, process.pid, cols, rows, line_number,
        )

    def write(self, data: bytes | str) -> None:
        """Send keystrokes to the editor.

        Raises:
            NoActiveSessionError: No session is running.
            OSError: The pty write failed.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")

        with self._lock:
            session = self._session
            if session is None:
                raise NoActiveSessionError()
            try:
                write_all(session.master_fd, data)
            except OSError as e:
                log.debug("pty write failed (pid=%d): %s", session.process.pid, e)
                raise

    def resize(self, cols: int, rows: int) -> None:
        """Update the terminal size.

        The size is always remembered for the next open_file(); a running
        session is resized immediately.
        """
        cols, rows = max(1, int(cols)), max(1, int(rows))

        with self._lock:
            self._pending_cols = cols
            self._pending_rows = rows

            session = self._session
            if session is None:
                return
            try:
                set_winsize(session.master_fd, cols, rows)
            except OSError as e:
                log.debug("pty resize failed (pid=%d): %s", session.process.pid, e)
                raise

    def is_running(self) -> bool:
        with self._lock:
            return self._session is not None

    def session_info(self) -> SessionInfo:
        with self._lock:
            session = self._session
            return SessionInfo(
                running=session is not None,
                pid=session.process.pid if session else None,
                file_path=session.file_path if session else None,
                cols=self._pending_cols,
                rows=self._pending_rows,
                editor=self._editor,
            )

    def close(self) -> None:
        """Kill the running editor, if any, and wait for it to exit.

        Idempotent. The exit callback is not called from here; the
        session's reader thread reports the exit once it sees the pty close.
        """
        with self._lock:
            if self._session is not None:
                self._terminate_locked()

    def _terminate_locked(self) -> None:
        session = self._session
        assert session is not None
        self._session = None
        session.stop.set()
        with contextlib.suppress(ProcessLookupError):
            session.process.kill()
        session.process.wait()
        log.debug("Editor terminated (pid=%d)", session.process.pid)

    def _read_loop(self, session: _Session) -> None:
        """Stream pty output until the editor side closes, then report exit."""
        fd = session.master_fd

        while True:
            try:
                ready, _, _ = select.select([fd], [], [], READ_POLL_INTERVAL)
            except (OSError, ValueError) as e:
                log.debug("pty select failed: %s", e)
                break

            if not ready:
                if session.stop.is_set():
                    break
                if session.process.poll() is not None:
                    # Output written just before exiting may still be buffered
                    self._drain(fd)
                    break
                continue

            try:
                data = os.read(fd, self._read_buffer_size)
            except OSError as e:
                # EIO is how Linux reports that the slave side closed
                if e.errno != errno.EIO:
                    log.warning("pty read failed: %s", e)
                break
            if not data:
                break
            self._deliver(data)

        with contextlib.suppress(subprocess.TimeoutExpired):
            session.process.wait(timeout=EXIT_REAP_TIMEOUT)

        with self._lock:
            superseded = self._session is not None and self._session is not session

        # A replaced session must not consume the cursor file of its successor
        cursor_line = 0 if superseded else read_cursor_line(self._cursor_file)

        with self._lock:
            if self._session is session:
                self._session = None
            os.close(fd)

        log.info(
            "Editor exited (pid=%d, code=%s, cursor_line=%d)",
            session.process.pid, session.process.returncode, cursor_line,
        )
        self._notify_exit(cursor_line)

    def _drain(self, fd: int) -> None:
        """Deliver whatever is readable on ``fd`` without blocking."""
        while True:
            try:
                ready, _, _ = select.select([fd], [], [], 0)
                if not ready:
                    return
                data = os.read(fd, self._read_buffer_size)
            except (OSError, ValueError):
                return
            if not data:
                return
            self._deliver(data)

    def _deliver(self, data: bytes) -> None:
        if self._on_data is None:
            return
        try:
            self._on_data(data)
        except Exception as e:
            log.error("Error in terminal data callback: %s", e)

    def _notify_exit(self, cursor_line: int) -> None:
        if self._on_exit is None:
            return
        try:
            self._on_exit(cursor_line)
        except Exception as e:
            log.error("Error in terminal exit callback: %s", e)

    def __enter__(self) -> EditorSessionManager:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
