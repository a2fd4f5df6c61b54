"""
WorkspacesWatch File Watcher Package.

Manifest watching, debouncing and the watch registry.
Requires Python 3.11+.
"""

from watcher.debouncer import Debouncer, DebounceState
from watcher.file_watcher import ManifestWatch, ManifestWatcher
from watcher.registry import WatchEntry, WatchRegistry

__all__ = [
    "Debouncer",
    "DebounceState",
    "ManifestWatch",
    "ManifestWatcher",
    "WatchEntry",
    "WatchRegistry",
]
