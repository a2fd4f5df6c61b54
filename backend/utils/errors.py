"""
WorkspacesWatch Errors.

Exception hierarchy shared by all packages.
Requires Python 3.11+.
"""

from pathlib import Path


class WorkspacesWatchError(Exception):
    """Base class for all workspaces-watch errors."""


class AlreadyRunning(WorkspacesWatchError):
    """Another watcher owns the instance marker."""

    def __init__(self, marker_path: Path) -> None:
        self.marker_path = marker_path
        super().__init__(
            f"A workspaces watch is already running. PID file {marker_path} already exists."
        )


class AlreadyWatching(WorkspacesWatchError):
    """A manifest path was registered twice."""

    def __init__(self, manifest_path: Path) -> None:
        self.manifest_path = manifest_path
        super().__init__(f"Already watching {manifest_path}")


class ProjectNotFound(WorkspacesWatchError):
    """No project could be loaded from the starting directory."""


class SyncError(WorkspacesWatchError):
    """A sync step failed. Never escapes the sync coordinator."""


class InstallFailure(SyncError):
    """The installer rejected a workspace."""


class ExecFailure(SyncError):
    """The post-sync command could not run or exited non-zero."""
