"""Live-sync bridge: republish files rewritten by the embedded editor.

Each watch maps an absolute file path to a document id. The containing
directory, not the file, is registered with the filesystem observer,
because editors often save by writing a temp file and renaming it over
the original, and many notification backends only report that at the
directory level. Events for other files in the same directory are
filtered out by path lookup.

A save is usually several events: an in-place save truncates the file
(``modified``) before writing it (``modified`` again) and closing it
(``closed``). Reading on the first event would publish an empty file, so
``created``/``modified`` only arm a per-path settle timer; the file is read
once no event arrived for ``settle_delay`` seconds. ``closed`` (a writer
finished) and ``moved`` onto the path (atomic rename) are complete saves
and are read right away.
"""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from editbridge.config.schema import DEFAULT_SETTLE_DELAY
from editbridge.logging import get_logger
from editbridge.watching.rwlock import ReadWriteLock

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

    from editbridge.config.schema import Config

log = get_logger("watching")

ChangeCallback = Callable[[str, str], None]

# Seconds to wait for the observer thread on close()
OBSERVER_JOIN_TIMEOUT = 5.0

# Identical content published again within this many seconds belongs to
# the same save (e.g. a close followed by an attribute change)
DUPLICATE_WINDOW = 1.0

_WRITE_EVENT_TYPES = frozenset({EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, EVENT_TYPE_CLOSED})


def normalize_path(path: str | bytes | os.PathLike[str]) -> str:
    """Absolute path with the directory part resolved through symlinks.

    The file name itself is kept as given so a watched symlink still
    matches events reported for its own name.
    """
    abs_path = os.path.abspath(os.fsdecode(path))
    directory, name = os.path.split(abs_path)
    return os.path.join(os.path.realpath(directory), name)


def written_path(event: FileSystemEvent) -> str | None:
    """Path whose contents an event may have changed, if any."""
    if event.is_directory:
        return None
    if event.event_type in _WRITE_EVENT_TYPES:
        return normalize_path(event.src_path)
    if event.event_type == EVENT_TYPE_MOVED and event.dest_path:
        # Atomic save: temp file renamed over the watched path
        return normalize_path(event.dest_path)
    return None


def completes_write(event: FileSystemEvent) -> bool:
    """True if the file is in its final state once this event is seen."""
    return event.event_type in (EVENT_TYPE_CLOSED, EVENT_TYPE_MOVED)


class _WriteEventHandler(FileSystemEventHandler):
    """Forwards file write events from the observer thread to the bridge."""

    def __init__(self, on_write: Callable[[str, bool], None]) -> None:
        super().__init__()
        self._on_write = on_write

    def on_any_event(self, event: FileSystemEvent) -> None:
        path = written_path(event)
        if path is None:
            return
        try:
            self._on_write(path, completes_write(event))
        except Exception as e:
            log.error("Error handling file event for %s: %s", path, e)


class WatchBridge:
    """Watches files opened for editing and reports their new content.

    The observer thread is started on construction and runs until close().
    The change callback runs on the observer thread or on a settle timer
    thread with (document_id, content).

    Example:
        bridge = WatchBridge(on_change=lambda doc, text: store.update(doc, text))
        bridge.watch_file("block-42", "notes/block-42.md")
        ...
        bridge.stop_watching("block-42")
        bridge.close()
    """

    def __init__(
        self,
        on_change: ChangeCallback | None = None,
        *,
        trim_content: bool = True,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        observer: BaseObserver | None = None,
    ) -> None:
        """Initialize the bridge and start the observer.

        Args:
            on_change: Receives (document_id, content) after each save.
            trim_content: Strip surrounding whitespace before publishing.
            settle_delay: Quiet seconds after a created/modified event
                before the file is read.
            observer: Observer to use (defaults to the platform's native one).
        """
        self._on_change = on_change
        self._trim_content = trim_content
        self._settle_delay = max(0.0, settle_delay)

        self._lock = ReadWriteLock()
        # Absolute path -> document id
        self._watching: dict[str, str] = {}
        # Absolute path -> (content, monotonic time) last published for it
        self._published: dict[str, tuple[str, float]] = {}
        self._closed = False

        # Absolute path -> timer that reads it once events stop arriving
        self._pending_lock = threading.Lock()
        self._pending: dict[str, threading.Timer] = {}

        self._handler = _WriteEventHandler(self._on_write_event)
        self._observer = observer if observer is not None else Observer()
        self._observer.start()

    @classmethod
    def from_config(
        cls,
        config: Config,
        on_change: ChangeCallback | None = None,
    ) -> WatchBridge:
        return cls(
            on_change,
            trim_content=config.watch.trim_content,
            settle_delay=config.watch.settle_delay,
        )

    def watch_file(self, document_id: str, path: str | os.PathLike[str]) -> None:
        """Start publishing writes to ``path`` as changes to ``document_id``.

        Raises:
            OSError: The containing directory could not be watched. The
                entry is still recorded.
        """
        abs_path = normalize_path(path)

        with self._lock.write_locked():
            self._watching[abs_path] = document_id
            self._published.pop(abs_path, None)

        # Scheduling an already-watched directory reuses its emitter
        self._observer.schedule(self._handler, os.path.dirname(abs_path), recursive=False)
        log.debug("Watching %s for document %s", abs_path, document_id)

    def stop_watching(self, document_id: str) -> None:
        """Remove the first watch entry for ``document_id``.

        The directory stays registered with the observer; events for it are
        dropped by the path lookup.
        """
        removed = None
        with self._lock.write_locked():
            for path, watched_id in self._watching.items():
                if watched_id == document_id:
                    removed = path
                    del self._watching[path]
                    self._published.pop(path, None)
                    break

        if removed is not None:
            self._cancel_pending(removed)
            log.debug("Stopped watching %s for document %s", removed, document_id)

    def watched_paths(self) -> dict[str, str]:
        """Snapshot of path -> document id."""
        with self._lock.read_locked():
            return dict(self._watching)

    def is_watching(self, document_id: str) -> bool:
        with self._lock.read_locked():
            return document_id in self._watching.values()

    def close(self) -> None:
        """Stop the observer and drop unread saves. Idempotent."""
        with self._lock.write_locked():
            if self._closed:
                return
            self._closed = True

        with self._pending_lock:
            timers = list(self._pending.values())
            self._pending.clear()
        for timer in timers:
            timer.cancel()

        self._observer.stop()
        self._observer.join(OBSERVER_JOIN_TIMEOUT)
        log.debug("Watch bridge closed")

    def _on_write_event(self, path: str, complete: bool) -> None:
        with self._lock.read_locked():
            if self._closed or path not in self._watching:
                return

        if complete or self._settle_delay == 0:
            self._cancel_pending(path)
            self._publish(path)
            return

        timer = threading.Timer(self._settle_delay, self._settle, args=(path,))
        timer.daemon = True
        with self._pending_lock:
            previous = self._pending.get(path)
            self._pending[path] = timer
        if previous is not None:
            previous.cancel()
        timer.start()

    def _settle(self, path: str) -> None:
        with self._pending_lock:
            # A newer event re-armed the path; its timer reads instead
            if self._pending.get(path) is not threading.current_thread():
                return
            del self._pending[path]
        self._publish(path)

    def _cancel_pending(self, path: str) -> None:
        with self._pending_lock:
            timer = self._pending.pop(path, None)
        if timer is not None:
            timer.cancel()

    def _publish(self, path: str) -> None:
        with self._lock.read_locked():
            document_id = self._watching.get(path)
        if document_id is None:
            return

        try:
            with open(path, encoding="utf-8", errors="replace") as f:
                content = f.read()
        except OSError as e:
            # Mid-rename or locked by the editor; the next event retries
            log.warning("Could not read watched file %s: %s", path, e)
            return

        if self._trim_content:
            content = content.strip()

        now = time.monotonic()
        with self._lock.write_locked():
            if self._watching.get(path) != document_id:
                return
            last = self._published.get(path)
            if last is not None and last[0] == content and now - last[1] < DUPLICATE_WINDOW:
                return
            self._published[path] = (content, now)

        log.debug("Watched file changed: %s (document %s)", path, document_id)
        if self._on_change is None:
            return
        try:
            self._on_change(document_id, content)
        except Exception as e:
            log.error("Error in file change callback: %s", e)

    def __enter__(self) -> WatchBridge:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
