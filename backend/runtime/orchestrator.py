"""
WorkspacesWatch Orchestrator.

Top-level watch loop: load the project, sync once, watch every
workspace manifest, and run until shutdown.
Requires Python 3.11+.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from lifecycle.instance_guard import InstanceGuard
from lifecycle.shutdown import ShutdownController
from project.loader import find_project
from project.models import Project
from reporting.reporter import MessageName, StreamReporter
from sync.coordinator import Runner, SyncCoordinator
from sync.installer import Installer, SubprocessInstaller
from sync.lock import ProjectLock
from utils.config import Settings, get_settings
from utils.logger import LoggerMixin
from watcher.debouncer import Scheduler
from watcher.file_watcher import ManifestWatcher
from watcher.registry import WatchFactory, WatchRegistry

ProjectLoader = Callable[[Path, Settings], Project]


@dataclass
class WatchOptions:
    """Options collected from the command line."""

    cwd: Path
    json: bool = False
    inline_builds: bool = False
    skip_builds: bool = False
    exec_command: str | None = None
    pid_file: Path | None = None

    @property
    def installer_flags(self) -> list[str]:
        """Flags forwarded to every install."""
        flags = []
        if self.json:
            flags.append("--json")
        if self.inline_builds:
            flags.append("--inline-builds")
        if self.skip_builds:
            flags.append("--skip-builds")
        return flags


class Orchestrator(LoggerMixin):
    """
    Wires the watch pipeline together and owns its lifetime.

    Collaborators default to their production implementations and can be
    swapped out for tests.
    """

    def __init__(
        self,
        options: WatchOptions,
        settings: Settings | None = None,
        loader: ProjectLoader = find_project,
        installer: Installer | None = None,
        runner: Runner | None = None,
        watch_factory: WatchFactory | None = None,
        scheduler: Scheduler | None = None,
        stdout: TextIO | None = None,
        install_signals: bool = True,
    ) -> None:
        self.options = options
        self.settings = settings or get_settings()
        self._loader = loader
        self._installer = installer
        self._runner = runner
        self._watch_factory = watch_factory
        self._scheduler = scheduler
        self._stdout = stdout
        self._install_signals = install_signals
        self._manifest_watcher: ManifestWatcher | None = None

        self.guard: InstanceGuard | None = None
        self.shutdown = ShutdownController()
        self.project: Project | None = None
        self.coordinator: SyncCoordinator | None = None
        self.registry: WatchRegistry | None = None

    async def run(self) -> int:
        """
        Run until shutdown.

        Returns:
            Process exit status

        Raises:
            AlreadyRunning: If single-instance mode is on and a marker exists
            ProjectNotFound: If no project can be loaded
        """
        if self.options.pid_file is not None:
            self.guard = InstanceGuard(self.options.pid_file)
            self.guard.acquire()
        self.shutdown.guard = self.guard

        try:
            project = self._loader(self.options.cwd, self.settings)
            self.project = project
            if self._install_signals:
                self.shutdown.install()

            with StreamReporter.start(json_output=self.options.json, stdout=self._stdout) as report:
                self.shutdown.reporter = report
                self._build(project, report)
                report.report_info(
                    MessageName.UNNAMED,
                    f"Starting in watch mode: {project.top_level_workspace.name}",
                )
                await self._run_until_shutdown(project)
        finally:
            self.shutdown.trigger("Watcher stopped")
            self.shutdown.restore()
            if self._manifest_watcher is not None:
                self._manifest_watcher.stop()

        self.log.debug("watch_loop_exited", reason=self.shutdown.reason)
        return 0

    async def _run_until_shutdown(self, project: Project) -> None:
        """
        Start the project and wait for shutdown.

        Shutdown wins over an unfinished startup: the initial sync is
        cancelled instead of awaited.
        """
        startup = asyncio.create_task(self.add_project(project))
        stopped = asyncio.create_task(self.shutdown.wait())
        try:
            await asyncio.wait((startup, stopped), return_when=asyncio.FIRST_COMPLETED)
            if not startup.done():
                self.log.info("startup_interrupted", reason=self.shutdown.reason)
                return
            startup.result()
            await stopped
        finally:
            for task in (startup, stopped):
                task.cancel()
            await asyncio.gather(startup, stopped, return_exceptions=True)

    def _build(self, project: Project, report: StreamReporter) -> None:
        lockfile = project.lockfile_path
        project_lock = ProjectLock(lockfile.with_name(lockfile.name + self.settings.sync.lock_suffix))
        installer = self._installer or SubprocessInstaller(
            self.settings.sync.installer_executable, project.root
        )
        self.coordinator = SyncCoordinator(
            project_lock=project_lock,
            installer=installer,
            reporter=report,
            flags=self.options.installer_flags,
            exec_command=self.options.exec_command,
            runner=self._runner,
        )

        watch_factory = self._watch_factory
        if watch_factory is None:
            self._manifest_watcher = ManifestWatcher()
            watch_factory = self._manifest_watcher

        self.registry = WatchRegistry(
            watch_factory=watch_factory,
            run_sync=self.coordinator.run_sync,
            reporter=report,
            scheduler=self._scheduler,
            debounce_delay=self.settings.debounce_delay,
            manifest_filename=self.settings.watcher.manifest_filename,
        )
        self.shutdown.registry = self.registry

    async def add_project(self, project: Project) -> None:
        """
        Sync the whole project once, then watch every workspace manifest.

        Existing watches are dropped first, so calling this again re-syncs
        from a clean slate.
        """
        assert self.registry is not None and self.coordinator is not None

        self.registry.clear_all()
        await self.coordinator.run_sync(project.top_level_workspace)

        for workspace in project.workspaces:
            if self.shutdown.is_shutting_down:
                # Signal arrived during the initial sync
                return
            if self.registry.manifest_path(workspace).exists():
                self.registry.add(workspace)
