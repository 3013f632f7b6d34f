"""Live-sync file watching.

Republishes the content of files rewritten by the embedded editor so the
host can refresh its preview while editing is in progress.
"""

from editbridge.watching.bridge import WatchBridge, normalize_path
from editbridge.watching.rwlock import ReadWriteLock

__all__ = [
    "ReadWriteLock",
    "WatchBridge",
    "normalize_path",
]
