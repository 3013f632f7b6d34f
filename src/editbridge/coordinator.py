"""Pairs the editor session with live-sync watching for one host.

Opening a document for editing starts watching its file and launches the
editor on it. While the editor runs, every save is pushed to the host as a
content update. When the editor exits, the file is read one final time,
persisted to the document store, and watching stops.

Events are emitted through a single ``emit(name, payload)`` function so the
host can forward them to whatever UI bus it uses:

- ``terminal:data``          base64-encoded editor output
- ``terminal:exit``          ``{"cursorLine": N}``
- ``block:content-updated``  ``{"blockId": id, "content": text}``
"""

from __future__ import annotations

import base64
import threading
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any, Protocol

from editbridge.logging import get_logger
from editbridge.terminal.manager import DataCallback, EditorSessionManager, ExitCallback
from editbridge.watching.bridge import ChangeCallback, WatchBridge

log = get_logger("coordinator")

EVENT_TERMINAL_DATA = "terminal:data"
EVENT_TERMINAL_EXIT = "terminal:exit"
EVENT_CONTENT_UPDATED = "block:content-updated"

EmitFn = Callable[[str, Any], None]
SessionFactory = Callable[[DataCallback, ExitCallback], EditorSessionManager]
BridgeFactory = Callable[[ChangeCallback], WatchBridge]


@dataclass
class Document:
    """A block whose text lives in a file on disk."""

    id: str
    file_path: str = ""
    content: str = ""


class DocumentStore(Protocol):
    """Persistence the coordinator needs from the host."""

    def get_document(self, document_id: str) -> Document:
        """Return the document. Raises KeyError if unknown."""
        ...

    def update_document(self, document: Document) -> None:
        """Persist the document."""
        ...


class InMemoryDocumentStore:
    """Dict-backed DocumentStore for tests and the standalone CLI."""

    def __init__(self, documents: list[Document] | None = None) -> None:
        self._lock = threading.Lock()
        self._documents: dict[str, Document] = {d.id: d for d in documents or []}

    def get_document(self, document_id: str) -> Document:
        with self._lock:
            return replace(self._documents[document_id])

    def update_document(self, document: Document) -> None:
        with self._lock:
            self._documents[document.id] = replace(document)


class EditorCoordinator:
    """Drives one EditorSessionManager and one WatchBridge for a host."""

    def __init__(
        self,
        store: DocumentStore,
        emit: EmitFn,
        *,
        session_factory: SessionFactory | None = None,
        bridge_factory: BridgeFactory | None = None,
        live_sync: bool = True,
    ) -> None:
        """Initialize the coordinator.

        Args:
            store: Where documents are read from and final content is saved.
            emit: Receives (event name, payload) for the host UI.
            session_factory: Builds the session manager from (on_data, on_exit).
            bridge_factory: Builds the watch bridge from on_change.
            live_sync: Publish saves while the editor is still open.
        """
        self._store = store
        self._emit = emit
        self._lock = threading.Lock()
        self._editing_id: str | None = None

        session_factory = session_factory or EditorSessionManager
        self._session = session_factory(self._on_terminal_data, self._on_terminal_exit)

        self._bridge: WatchBridge | None = None
        if live_sync:
            bridge_factory = bridge_factory or WatchBridge
            self._bridge = bridge_factory(self._on_content_changed)

    @property
    def session(self) -> EditorSessionManager:
        return self._session

    @property
    def editing_document_id(self) -> str | None:
        with self._lock:
            return self._editing_id

    def open_document_in_editor(self, document_id: str, line_number: int = 0) -> None:
        """Open the document's file in the embedded editor.

        Raises:
            KeyError: Unknown document.
            ValueError: The document has no file on disk.
            EditorStartError: The editor could not be started.
        """
        document = self._store.get_document(document_id)
        if not document.file_path:
            raise ValueError(f"document {document_id} has no file path")

        with self._lock:
            previous = self._editing_id
            self._editing_id = document_id

        if self._bridge is not None:
            if previous and previous != document_id:
                self._bridge.stop_watching(previous)
            try:
                self._bridge.watch_file(document_id, document.file_path)
            except OSError as e:
                # Editing still works; only the live preview is lost
                log.warning("Live sync unavailable for %s: %s", document.file_path, e)

        self._session.open_file(document.file_path, line_number)

    def close_editor(self) -> None:
        """Stop watching the edited document and kill the editor."""
        with self._lock:
            editing_id = self._editing_id
            self._editing_id = None

        if editing_id and self._bridge is not None:
            self._bridge.stop_watching(editing_id)
        self._session.close()

    def terminal_write(self, data: bytes | str) -> None:
        self._session.write(data)

    def terminal_resize(self, cols: int, rows: int) -> None:
        self._session.resize(cols, rows)

    def shutdown(self) -> None:
        """Close the editor and the watcher."""
        self.close_editor()
        if self._bridge is not None:
            self._bridge.close()

    def _on_terminal_data(self, data: bytes) -> None:
        self._emit(EVENT_TERMINAL_DATA, base64.b64encode(data).decode("ascii"))

    def _on_terminal_exit(self, cursor_line: int) -> None:
        if self._session.is_running():
            # A session replaced by open_document_in_editor(); the new one is live
            log.debug("Ignoring exit of a replaced editor session")
            return

        with self._lock:
            editing_id = self._editing_id
            self._editing_id = None

        if editing_id:
            self._finish_editing(editing_id)
        self._emit(EVENT_TERMINAL_EXIT, {"cursorLine": cursor_line})

    def _finish_editing(self, document_id: str) -> None:
        if self._bridge is not None:
            self._bridge.stop_watching(document_id)

        try:
            document = self._store.get_document(document_id)
        except KeyError:
            log.warning("Edited document %s no longer exists", document_id)
            return
        if not document.file_path:
            return

        try:
            with open(document.file_path, encoding="utf-8", errors="replace") as f:
                content = f.read().strip()
        except OSError as e:
            log.warning("Could not read %s after editing: %s", document.file_path, e)
            return

        document.content = content
        self._store.update_document(document)
        self._emit(EVENT_CONTENT_UPDATED, {"blockId": document_id, "content": content})

    def _on_content_changed(self, document_id: str, content: str) -> None:
        self._emit(EVENT_CONTENT_UPDATED, {"blockId": document_id, "content": content})
