"""
WorkspacesWatch Manifest Watcher.

Per-manifest file system monitoring using watchdog.
Requires Python 3.11+.
"""

import asyncio
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

from utils.logger import LoggerMixin


class ManifestEventHandler(FileSystemEventHandler, LoggerMixin):
    """
    Forwards events touching a single manifest file.

    Runs on the observer thread; the callback is marshalled onto the
    asyncio loop.
    """

    def __init__(
        self,
        manifest_path: Path,
        callback: Callable[[], Any],
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        """
        Initialize the handler.

        Args:
            manifest_path: Manifest file to filter on
            callback: Called on the loop thread for every matching event
            loop: Event loop owning the callback
        """
        super().__init__()
        self._manifest_path = os.fsdecode(manifest_path)
        self._callback = callback
        self._loop = loop

    def _matches(self, event: FileSystemEvent) -> bool:
        if event.is_directory:
            return False
        paths = [event.src_path, getattr(event, "dest_path", "")]
        return any(os.fsdecode(p) == self._manifest_path for p in paths if p)

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Handle any file system event."""
        if event.event_type in ("opened", "closed_no_write") or not self._matches(event):
            return

        self.log.debug("manifest_event", path=self._manifest_path, event_type=event.event_type)
        try:
            self._loop.call_soon_threadsafe(self._callback)
        except RuntimeError:
            # Loop closed during shutdown
            self.log.debug("manifest_event_dropped", path=self._manifest_path)


class ManifestWatch:
    """Handle for one active manifest watch."""

    def __init__(self, observer: Observer, watch: ObservedWatch, manifest_path: Path) -> None:
        self._observer = observer
        self._watch = watch
        self.manifest_path = manifest_path
        self.closed = False

    def close(self) -> None:
        """Stop delivering events. Idempotent."""
        if self.closed:
            return
        self.closed = True
        try:
            self._observer.unschedule(self._watch)
        except KeyError:
            # Already unscheduled, e.g. the observer was stopped first
            pass


class ManifestWatcher(LoggerMixin):
    """
    Watches individual manifest files.

    Owns a single watchdog observer; each manifest gets a non-recursive
    watch on its directory filtered down to the manifest itself.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """
        Initialize the manifest watcher.

        Args:
            loop: Loop that receives callbacks (defaults to the running loop
                at first watch)
        """
        self._loop = loop
        self._observer: Observer | None = None
        self._running = False

    def start(self) -> None:
        """Start the observer thread."""
        if self._running:
            return

        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._observer = Observer()
        self._observer.start()
        self._running = True
        self.log.debug("manifest_watcher_started")

    def stop(self) -> None:
        """Stop the observer thread and drop every watch."""
        if not self._running:
            return

        if self._observer is not None:
            self._observer.unschedule_all()
            self._observer.stop()
            self._observer.join(timeout=5.0)
            self._observer = None

        self._running = False
        self.log.debug("manifest_watcher_stopped")

    def watch(self, manifest_path: Path, callback: Callable[[], Any]) -> ManifestWatch:
        """
        Begin observing a manifest file.

        Args:
            manifest_path: File to observe
            callback: Invoked on the event loop for each change notification

        Returns:
            Handle whose close() stops the watch
        """
        self.start()
        assert self._observer is not None and self._loop is not None

        handler = ManifestEventHandler(manifest_path, callback, self._loop)
        observed = self._observer.schedule(handler, str(manifest_path.parent), recursive=False)
        self.log.debug("manifest_watch_scheduled", path=str(manifest_path))
        return ManifestWatch(self._observer, observed, manifest_path)

    @property
    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._running

    def __enter__(self) -> "ManifestWatcher":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.stop()
