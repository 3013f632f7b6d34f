"""editbridge: embed a terminal editor in a host app and live-sync its saves."""

__version__ = "0.1.0"

from editbridge.config import Config, get_config, load_config
from editbridge.coordinator import (
    Document,
    DocumentStore,
    EditorCoordinator,
    InMemoryDocumentStore,
)
from editbridge.terminal import (
    EditorError,
    EditorSessionManager,
    EditorStartError,
    NoActiveSessionError,
    SessionInfo,
)
from editbridge.watching import WatchBridge

__all__ = [
    # Components
    "EditorSessionManager",
    "SessionInfo",
    "WatchBridge",
    "EditorCoordinator",
    # Documents
    "Document",
    "DocumentStore",
    "InMemoryDocumentStore",
    # Errors
    "EditorError",
    "EditorStartError",
    "NoActiveSessionError",
    # Config
    "Config",
    "load_config",
    "get_config",
]
