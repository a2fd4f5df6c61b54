"""
WorkspacesWatch Installer.

Subprocess-backed installer and post-sync command runner.
Requires Python 3.11+.
"""

import asyncio
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from project.models import Workspace
from utils.errors import ExecFailure, InstallFailure
from utils.logger import LoggerMixin


class Installer(Protocol):
    """Resolves and installs dependencies for one workspace."""

    async def install(self, workspace: Workspace, flags: Sequence[str]) -> None: ...


class SubprocessInstaller(LoggerMixin):
    """
    Runs the package manager's per-workspace install command.

    The child inherits stdout/stderr so its own progress output is
    shown as-is.
    """

    def __init__(self, executable: str, project_root: Path) -> None:
        """
        Initialize the installer.

        Args:
            executable: Package manager executable, e.g. "yarn"
            project_root: Working directory for every install
        """
        self._executable = executable
        self._project_root = project_root

    def command(self, workspace: Workspace, flags: Sequence[str]) -> list[str]:
        """Argument vector used to install a workspace."""
        return [self._executable, "workspace", workspace.name, "install", *flags]

    async def install(self, workspace: Workspace, flags: Sequence[str]) -> None:
        """
        Install dependencies for a workspace.

        Raises:
            InstallFailure: If the installer cannot start or exits non-zero
        """
        argv = self.command(workspace, flags)
        self.log.debug("install_started", workspace=workspace.name, argv=argv)
        try:
            process = await asyncio.create_subprocess_exec(*argv, cwd=self._project_root)
        except OSError as e:
            raise InstallFailure(f"Cannot run {argv[0]}: {e}") from e

        returncode = await process.wait()
        if returncode != 0:
            raise InstallFailure(
                f"Install of {workspace.name} failed with exit code {returncode}"
            )
        self.log.debug("install_completed", workspace=workspace.name)


class CommandRunner(LoggerMixin):
    """Runs the user's post-sync command inside a workspace directory."""

    async def run(self, argv: Sequence[str], cwd: Path) -> None:
        """
        Execute an argument vector.

        Raises:
            ExecFailure: If argv is empty, cannot start, or exits non-zero
        """
        if not argv:
            raise ExecFailure("Empty command")

        self.log.debug("exec_started", argv=list(argv), cwd=str(cwd))
        try:
            process = await asyncio.create_subprocess_exec(*argv, cwd=cwd)
        except OSError as e:
            raise ExecFailure(f"Cannot run {argv[0]}: {e}") from e

        returncode = await process.wait()
        if returncode != 0:
            raise ExecFailure(f"Command {argv[0]} exited with code {returncode} in {cwd}")
