"""Run the embedded editor on a file from the command line.

Usage:
    python -m editbridge notes/todo.md --line 12

The editor takes over the current terminal. Saves are reported through the
log (set EB_LOG to a file to see them without disturbing the editor), and
the cursor line the editor exited on is printed afterwards. SIGHUP reloads
the config files and applies the new logging level.
"""

from __future__ import annotations

import argparse
import os
import select
import shutil
import signal
import sys
import termios
import threading
import tty
from collections.abc import Callable
from types import FrameType

from editbridge.config import Config, load_config, on_config_reload, reload_config
from editbridge.logging import apply_level, get_logger, setup_logging
from editbridge.terminal import EditorSessionManager, EditorStartError
from editbridge.watching import WatchBridge

log = get_logger()

# Polling interval for stdin so the relay notices the editor exiting
STDIN_POLL_INTERVAL = 0.1


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="editbridge",
        description="Edit a file in an embedded terminal editor with live sync.",
    )
    parser.add_argument("file", help="file to edit")
    parser.add_argument("--line", type=int, default=0, help="line to open at")
    parser.add_argument("--cols", type=int, help="terminal width (default: current)")
    parser.add_argument("--rows", type=int, help="terminal height (default: current)")
    parser.add_argument("--project", help="project root for .editbridge/config.yaml")
    parser.add_argument(
        "-v", "--verbose", type=int, choices=range(5), help="0=error .. 4=trace"
    )
    return parser.parse_args(argv)


def _relay_stdin(manager: EditorSessionManager, done: threading.Event) -> None:
    fd = sys.stdin.fileno()
    while not done.is_set():
        ready, _, _ = select.select([fd], [], [], STDIN_POLL_INTERVAL)
        if not ready:
            continue
        data = os.read(fd, 4096)
        if not data:
            break
        try:
            manager.write(data)
        except OSError as e:
            log.debug("Dropped input: %s", e)
            break


def _relevel_on_reload(verbose: int | None) -> Callable[[Config], None]:
    """Reload callback that applies the new logging level; ``-v`` still wins."""

    def relevel(config: Config) -> None:
        if verbose is not None:
            config.logging.verbose = verbose
        level = apply_level(config.logging)
        log.info("Config reloaded (log level %d)", level)

    return relevel


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    config = load_config(project_root=args.project)
    if args.verbose is not None:
        config.logging.verbose = args.verbose
    setup_logging(config.logging)

    size = shutil.get_terminal_size((config.editor.cols, config.editor.rows))
    cols = args.cols or size.columns
    rows = args.rows or size.lines

    done = threading.Event()
    exit_line: list[int] = [0]

    def on_data(data: bytes) -> None:
        os.write(sys.stdout.fileno(), data)

    def on_exit(cursor_line: int) -> None:
        exit_line[0] = cursor_line
        done.set()

    def on_change(document_id: str, content: str) -> None:
        log.info("Live sync: %s (%d chars)", document_id, len(content))

    manager = EditorSessionManager.from_config(config, on_data, on_exit)
    manager.resize(cols, rows)

    bridge = WatchBridge.from_config(config, on_change) if config.watch.enabled else None
    if bridge is not None:
        try:
            bridge.watch_file(args.file, args.file)
        except OSError as e:
            log.warning("Live sync unavailable: %s", e)

    def on_winch(_signo: int, _frame: FrameType | None) -> None:
        size = shutil.get_terminal_size((cols, rows))
        manager.resize(size.columns, size.lines)

    interactive = sys.stdin.isatty()
    saved_attrs = termios.tcgetattr(sys.stdin.fileno()) if interactive else None

    try:
        manager.open_file(args.file, args.line)
    except EditorStartError as e:
        print(f"editbridge: editor could not be opened: {e}", file=sys.stderr)
        if bridge is not None:
            bridge.close()
        return 1

    def on_hup(_signo: int, _frame: FrameType | None) -> None:
        reload_config(args.project)

    unregister_reload = on_config_reload(_relevel_on_reload(args.verbose))

    try:
        if interactive:
            tty.setraw(sys.stdin.fileno())
            signal.signal(signal.SIGWINCH, on_winch)
            signal.signal(signal.SIGHUP, on_hup)
        threading.Thread(target=_relay_stdin, args=(manager, done), daemon=True).start()
        done.wait()
    except KeyboardInterrupt:
        manager.close()
        done.wait()
    finally:
        unregister_reload()
        if saved_attrs is not None:
            termios.tcsetattr(sys.stdin.fileno(), termios.TCSADRAIN, saved_attrs)
        if bridge is not None:
            bridge.close()

    print(f"cursor line: {exit_line[0]}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
