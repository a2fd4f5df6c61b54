"""
WorkspacesWatch Watch Registry.

Tracks one manifest watch and one debounce timer per workspace.
Requires Python 3.11+.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from project.models import Workspace
from reporting.reporter import MessageName, StreamReporter
from utils.config import get_settings
from utils.errors import AlreadyWatching
from utils.logger import LoggerMixin
from watcher.debouncer import Debouncer, DebounceState, Scheduler, TimerHandle


class WatchHandle(Protocol):
    """An active file watch."""

    def close(self) -> None: ...


class WatchFactory(Protocol):
    """Creates file watches; ManifestWatcher is the production implementation."""

    def watch(self, manifest_path: Path, callback: Callable[[], Any]) -> WatchHandle: ...


SyncRunner = Callable[[Workspace], Awaitable[Any]]


@dataclass
class WatchEntry:
    """A watched workspace."""

    workspace: Workspace
    manifest_path: Path
    watch: WatchHandle
    debouncer: Debouncer
    sync_task: asyncio.Task[None] | None = field(default=None, repr=False)

    @property
    def pending_timer(self) -> TimerHandle | None:
        """Armed debounce timer, if a change is waiting out its quiet period."""
        return self.debouncer.handle

    @property
    def state(self) -> DebounceState:
        return self.debouncer.state


class WatchRegistry(LoggerMixin):
    """
    Single source of truth for what is currently watched.

    Raw change notifications are debounced per entry; once an entry's
    quiet period elapses its workspace is handed to the sync runner.
    All methods must be called from the event loop thread.
    """

    def __init__(
        self,
        watch_factory: WatchFactory,
        run_sync: SyncRunner,
        reporter: StreamReporter,
        scheduler: Scheduler | None = None,
        debounce_delay: float | None = None,
        manifest_filename: str | None = None,
    ) -> None:
        """
        Initialize the registry.

        Args:
            watch_factory: Creates the underlying file watches
            run_sync: Coroutine function invoked with the changed workspace
            reporter: Receives add/change/close/update notifications
            scheduler: Timer source (defaults to the running event loop)
            debounce_delay: Quiet period in seconds
            manifest_filename: Manifest file name inside each workspace
        """
        settings = get_settings()

        self._watch_factory = watch_factory
        self._run_sync = run_sync
        self._reporter = reporter
        self._scheduler = scheduler
        self._debounce_delay = (
            debounce_delay if debounce_delay is not None else settings.debounce_delay
        )
        self._manifest_filename = manifest_filename or settings.watcher.manifest_filename
        self._entries: dict[Path, WatchEntry] = {}
        self._inflight: set[asyncio.Task[None]] = set()

    def _get_scheduler(self) -> Scheduler:
        if self._scheduler is None:
            self._scheduler = asyncio.get_running_loop()
        return self._scheduler

    def manifest_path(self, workspace: Workspace) -> Path:
        """Manifest path observed for a workspace."""
        return workspace.manifest_path(self._manifest_filename)

    def add(self, workspace: Workspace) -> WatchEntry:
        """
        Start watching a workspace's manifest.

        Raises:
            AlreadyWatching: If the manifest path is already registered
        """
        manifest_path = self.manifest_path(workspace)
        if manifest_path in self._entries:
            raise AlreadyWatching(manifest_path)

        self._reporter.report_info(MessageName.UNNAMED, f"Watching workspace: {workspace.name}")
        watch = self._watch_factory.watch(manifest_path, lambda: self.on_change(manifest_path))
        entry = WatchEntry(
            workspace=workspace,
            manifest_path=manifest_path,
            watch=watch,
            debouncer=Debouncer(self._debounce_delay, self._get_scheduler()),
        )
        self._entries[manifest_path] = entry
        self.log.debug("watch_added", workspace=workspace.name, path=str(manifest_path))
        return entry

    def remove(self, manifest_path: Path) -> bool:
        """
        Stop watching a manifest path.

        Closes the watch and cancels any pending timer. Unknown paths are
        ignored.

        Returns:
            True if an entry was removed
        """
        entry = self._entries.pop(manifest_path, None)
        if entry is None:
            return False

        entry.debouncer.cancel()
        entry.watch.close()
        self._reporter.report_info(MessageName.UNNAMED, f"Workspace closed: {manifest_path}")
        self.log.debug("watch_removed", workspace=entry.workspace.name, path=str(manifest_path))
        return True

    def clear_all(self) -> int:
        """
        Remove every entry. Idempotent.

        Returns:
            Number of entries removed
        """
        removed = 0
        for manifest_path in list(self._entries):
            if self.remove(manifest_path):
                removed += 1
        return removed

    def on_change(self, manifest_path: Path) -> None:
        """
        Handle a raw change notification for a manifest.

        A vanished manifest removes its entry; otherwise the entry's
        debounce timer is (re)armed.
        """
        entry = self._entries.get(manifest_path)
        if entry is None:
            # Notification queued before the entry was removed
            return

        if not manifest_path.exists():
            self.log.debug("watch_target_gone", path=str(manifest_path))
            self.remove(manifest_path)
            return

        if entry.debouncer.touch(lambda: self._on_quiet(entry)):
            self._reporter.report_info(
                MessageName.UNNAMED, f"Workspace changed {entry.workspace.cwd}"
            )

    def _on_quiet(self, entry: WatchEntry) -> None:
        if self._entries.get(entry.manifest_path) is not entry:
            return

        task = self._get_scheduler().create_task(self._sync_entry(entry))
        entry.sync_task = task
        self._inflight.add(task)
        task.add_done_callback(self._on_sync_done)

    async def _sync_entry(self, entry: WatchEntry) -> None:
        self.log.debug("sync_triggered", workspace=entry.workspace.name)
        try:
            await self._run_sync(entry.workspace)
        finally:
            self._reporter.report_info(
                MessageName.UNNAMED, f"Workspace updated {entry.workspace.cwd}"
            )

    def _on_sync_done(self, task: asyncio.Task[None]) -> None:
        self._inflight.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self.log.error("sync_task_failed", error=str(task.exception()))

    def pending_syncs(self) -> set[asyncio.Task[None]]:
        """Syncs started by this registry that have not completed yet."""
        return set(self._inflight)

    async def wait_idle(self) -> None:
        """Wait until every in-flight sync has completed."""
        while self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    def get(self, manifest_path: Path) -> WatchEntry | None:
        return self._entries.get(manifest_path)

    @property
    def entries(self) -> dict[Path, WatchEntry]:
        """Snapshot of the registered entries keyed by manifest path."""
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, manifest_path: object) -> bool:
        return manifest_path in self._entries
