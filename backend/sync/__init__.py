"""
WorkspacesWatch Sync Package.

Project-wide serialized dependency syncs.
Requires Python 3.11+.
"""

from sync.coordinator import SyncCoordinator, SyncResult, SyncStatus
from sync.installer import CommandRunner, Installer, SubprocessInstaller
from sync.lock import ProjectLock

__all__ = [
    "CommandRunner",
    "Installer",
    "ProjectLock",
    "SubprocessInstaller",
    "SyncCoordinator",
    "SyncResult",
    "SyncStatus",
]
