"""
WorkspacesWatch Sync Coordinator.

Serializes dependency syncs across the project and runs the
post-sync command.
Requires Python 3.11+.
"""

import shlex
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from project.models import Workspace
from reporting.reporter import MessageName, StreamReporter
from sync.installer import CommandRunner, Installer
from sync.lock import ProjectLock
from utils.errors import ExecFailure, InstallFailure
from utils.logger import LoggerMixin


class Runner(Protocol):
    async def run(self, argv: Sequence[str], cwd: Path) -> None: ...


class SyncStatus(str, Enum):
    """Outcome of one sync."""

    SUCCESS = "success"
    INSTALL_FAILED = "install_failed"
    EXEC_FAILED = "exec_failed"
    FAILED = "failed"


@dataclass
class SyncResult:
    """What happened during a sync. Informational only; failures are already reported."""

    workspace: Workspace
    status: SyncStatus
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is SyncStatus.SUCCESS


class SyncCoordinator(LoggerMixin):
    """
    Runs the install-then-command sequence for a workspace.

    At most one install runs project-wide at any time: every sync takes
    the project lock before invoking the installer. The post-sync
    command runs after the lock is released. run_sync() never raises
    for installer or command failures; they are reported instead.
    """

    def __init__(
        self,
        project_lock: ProjectLock,
        installer: Installer,
        reporter: StreamReporter,
        flags: Sequence[str] = (),
        exec_command: str | None = None,
        runner: Runner | None = None,
        splitter: Callable[[str], list[str]] = shlex.split,
    ) -> None:
        """
        Initialize the coordinator.

        Args:
            project_lock: Lock shared by every sync of the project
            installer: Installs one workspace
            reporter: Receives failure diagnostics
            flags: Flags forwarded to every install
            exec_command: Shell-style command run after each sync
            runner: Executes the split command
            splitter: Splits exec_command into an argument vector
        """
        self._lock = project_lock
        self._installer = installer
        self._reporter = reporter
        self._flags = list(flags)
        self._exec_command = exec_command
        self._runner = runner or CommandRunner()
        self._splitter = splitter

    @property
    def flags(self) -> list[str]:
        return list(self._flags)

    async def run_sync(self, workspace: Workspace) -> SyncResult:
        """
        Sync one workspace.

        Args:
            workspace: Workspace whose manifest changed

        Returns:
            SyncResult describing the outcome
        """
        try:
            async with self._lock:
                self.log.debug("sync_started", workspace=workspace.name)
                await self._installer.install(workspace, self._flags)

            if self._exec_command:
                await self._run_exec(workspace)
        except InstallFailure as e:
            return self._failed(workspace, SyncStatus.INSTALL_FAILED, MessageName.INSTALL_FAILED, e)
        except ExecFailure as e:
            return self._failed(workspace, SyncStatus.EXEC_FAILED, MessageName.EXEC_FAILED, e)
        except Exception as e:
            return self._failed(workspace, SyncStatus.FAILED, MessageName.EXCEPTION, e)

        self.log.debug("sync_completed", workspace=workspace.name)
        return SyncResult(workspace=workspace, status=SyncStatus.SUCCESS)

    async def _run_exec(self, workspace: Workspace) -> None:
        assert self._exec_command is not None
        try:
            argv = self._splitter(self._exec_command)
        except ValueError as e:
            raise ExecFailure(f"Invalid command {self._exec_command!r}: {e}") from e
        await self._runner.run(argv, workspace.cwd)

    def _failed(
        self,
        workspace: Workspace,
        status: SyncStatus,
        name: MessageName,
        error: Exception,
    ) -> SyncResult:
        self.log.warning("sync_failed", workspace=workspace.name, status=status.value, error=str(error))
        self._reporter.report_error(name, str(error))
        return SyncResult(workspace=workspace, status=status, error=str(error))
