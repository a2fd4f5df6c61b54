"""
WorkspacesWatch Test Configuration.

Pytest fixtures and configuration.
Requires Python 3.11+.
"""

import asyncio
import io
import json
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from project.models import Workspace
from reporting.reporter import StreamReporter
from utils.errors import InstallFailure


class FakeTimer:
    """Timer handle driven by FakeScheduler."""

    def __init__(self, when: float, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock: timers fire only when advance() passes their deadline."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeTimer:
        timer = FakeTimer(self.now + delay, callback, args)
        self.timers.append(timer)
        return timer

    def create_task(self, coro: Any) -> asyncio.Task[Any]:
        return asyncio.get_running_loop().create_task(coro)

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = sorted(
            (t for t in self.timers if not t.cancelled and t.when <= self.now + 1e-9),
            key=lambda t: t.when,
        )
        for timer in due:
            self.timers.remove(timer)
            timer.callback(*timer.args)

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]


class FakeWatch:
    """Watch handle recorded by FakeWatchFactory."""

    def __init__(self, manifest_path: Path, callback: Callable[[], Any]) -> None:
        self.manifest_path = manifest_path
        self.callback = callback
        self.close_count = 0

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    def close(self) -> None:
        self.close_count += 1


class FakeWatchFactory:
    """Records watches; tests deliver notifications with notify()."""

    def __init__(self) -> None:
        self.watches: list[FakeWatch] = []

    def watch(self, manifest_path: Path, callback: Callable[[], Any]) -> FakeWatch:
        w = FakeWatch(manifest_path, callback)
        self.watches.append(w)
        return w

    def active(self) -> list[FakeWatch]:
        return [w for w in self.watches if not w.closed]

    def notify(self, manifest_path: Path) -> None:
        for w in self.watches:
            if w.manifest_path == manifest_path and not w.closed:
                w.callback()


class FakeInstaller:
    """
    Records install calls and tracks how many overlap.

    Installs of workspaces named in `hold_for` block until `gate` is set.
    """

    def __init__(
        self,
        delay: float = 0.0,
        fail_for: Sequence[str] = (),
        hold_for: Sequence[str] = (),
    ) -> None:
        self.delay = delay
        self.fail_for = set(fail_for)
        self.hold_for = set(hold_for)
        self.gate = asyncio.Event()
        self.cancelled: list[str] = []
        self.calls: list[tuple[str, list[str]]] = []
        self.events: list[tuple[str, str]] = []
        self.active = 0
        self.max_active = 0

    async def install(self, workspace: Workspace, flags: Sequence[str]) -> None:
        self.calls.append((workspace.name, list(flags)))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.events.append(("start", workspace.name))
        try:
            if workspace.name in self.hold_for:
                await self.gate.wait()
            if self.delay:
                await asyncio.sleep(self.delay)
            if workspace.name in self.fail_for:
                raise InstallFailure(f"Install of {workspace.name} failed with exit code 1")
        except asyncio.CancelledError:
            self.cancelled.append(workspace.name)
            raise
        finally:
            self.events.append(("end", workspace.name))
            self.active -= 1

    @property
    def installed(self) -> list[str]:
        return [name for name, _ in self.calls]


class FakeRunner:
    """Records post-sync commands."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[tuple[list[str], Path]] = []

    async def run(self, argv: Sequence[str], cwd: Path) -> None:
        self.calls.append((list(argv), cwd))
        if self.error is not None:
            raise self.error


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def watch_factory() -> FakeWatchFactory:
    return FakeWatchFactory()


@pytest.fixture
def installer() -> FakeInstaller:
    return FakeInstaller()


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def reporter(output: io.StringIO) -> StreamReporter:
    """Open text-mode reporter writing into `output`."""
    return StreamReporter(stdout=output)


def write_manifest(directory: Path, data: dict[str, Any]) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    manifest = directory / "package.json"
    manifest.write_text(json.dumps(data))
    return manifest


@pytest.fixture
def project_tree(tmp_path: Path) -> Path:
    """
    Create a project with two workspaces.

    Layout:
        root/package.json      (workspaces: packages/*)
        root/yarn.lock
        root/packages/pkgA/package.json
        root/packages/pkgB/package.json
        root/packages/notes/   (no manifest)
    """
    root = tmp_path / "root"
    write_manifest(root, {"name": "root", "private": True, "workspaces": ["packages/*"]})
    (root / "yarn.lock").write_text("")
    write_manifest(root / "packages" / "pkgA", {"name": "pkgA", "version": "1.0.0"})
    write_manifest(root / "packages" / "pkgB", {"name": "pkgB", "version": "1.0.0"})
    (root / "packages" / "notes").mkdir()
    return root


@pytest.fixture
def workspace_a(project_tree: Path) -> Workspace:
    return Workspace(cwd=project_tree / "packages" / "pkgA", name="pkgA")


@pytest.fixture
def workspace_b(project_tree: Path) -> Workspace:
    return Workspace(cwd=project_tree / "packages" / "pkgB", name="pkgB")
