"""
Tests for the Instance Guard and Shutdown Controller.

Requires Python 3.11+.
"""

import asyncio
import io
import os
import signal
from pathlib import Path

import pytest

from conftest import FakeScheduler, FakeWatchFactory
from lifecycle.instance_guard import InstanceGuard
from lifecycle.shutdown import ShutdownController
from project.models import Workspace
from reporting.reporter import StreamReporter
from utils.errors import AlreadyRunning
from watcher.registry import WatchRegistry


class TestInstanceGuard:
    """Test cases for InstanceGuard."""

    def test_acquire_writes_pid(self, tmp_path: Path):
        """Test that the marker records the current process id."""
        marker = tmp_path / "watch.pid"
        guard = InstanceGuard(marker)

        guard.acquire()

        assert guard.owned
        assert marker.read_text() == str(os.getpid())

    def test_existing_marker_is_fatal_and_untouched(self, tmp_path: Path):
        """Test that a pre-existing marker fails without being overwritten."""
        marker = tmp_path / "watch.pid"
        marker.write_text("4242")
        guard = InstanceGuard(marker)

        with pytest.raises(AlreadyRunning) as exc_info:
            guard.acquire()

        assert str(marker) in str(exc_info.value)
        assert marker.read_text() == "4242"
        assert not guard.owned
        assert guard.release() is False
        assert marker.exists()

    def test_release_is_idempotent(self, tmp_path: Path):
        """Test that the marker is removed exactly once."""
        marker = tmp_path / "watch.pid"
        guard = InstanceGuard(marker)
        guard.acquire()

        assert guard.release() is True
        assert guard.release() is False
        assert not marker.exists()

    def test_context_manager(self, tmp_path: Path):
        """Test scoped acquisition."""
        marker = tmp_path / "watch.pid"
        with InstanceGuard(marker):
            assert marker.exists()
        assert not marker.exists()


class TestShutdownController:
    """Test cases for ShutdownController."""

    @pytest.fixture
    def registry(
        self,
        watch_factory: FakeWatchFactory,
        reporter: StreamReporter,
        scheduler: FakeScheduler,
        workspace_a: Workspace,
        workspace_b: Workspace,
    ) -> WatchRegistry:
        async def no_sync(workspace: Workspace) -> None:
            return None

        registry = WatchRegistry(
            watch_factory=watch_factory,
            run_sync=no_sync,
            reporter=reporter,
            scheduler=scheduler,
            debounce_delay=0.3,
            manifest_filename="package.json",
        )
        registry.add(workspace_a)
        registry.add(workspace_b)
        return registry

    @pytest.fixture
    def guard(self, tmp_path: Path) -> InstanceGuard:
        guard = InstanceGuard(tmp_path / "watch.pid")
        guard.acquire()
        return guard

    async def test_cleanup_runs_once(
        self,
        registry: WatchRegistry,
        watch_factory: FakeWatchFactory,
        scheduler: FakeScheduler,
        guard: InstanceGuard,
        reporter: StreamReporter,
        output: io.StringIO,
        workspace_a: Workspace,
    ):
        """Test that a repeated trigger performs cleanup exactly once."""
        registry.on_change(workspace_a.cwd / "package.json")
        controller = ShutdownController(registry=registry, guard=guard, reporter=reporter)

        assert controller.trigger("Received SIGINT") is True
        assert controller.trigger("Received SIGTERM") is False

        assert controller.cleanup_count == 1
        assert controller.is_shutting_down
        assert len(registry) == 0
        assert all(w.close_count == 1 for w in watch_factory.watches)
        assert scheduler.pending == []
        assert not guard.marker_path.exists()
        assert output.getvalue().count("exiting gracefully") == 1
        assert "Received SIGINT, exiting gracefully." in output.getvalue()

        await asyncio.wait_for(controller.wait(), timeout=1.0)

    async def test_no_reporter_after_session_closed(
        self, registry: WatchRegistry, reporter: StreamReporter, output: io.StringIO
    ):
        """Test that cleanup skips the exit message when reporting has ended."""
        reporter.finalize()
        controller = ShutdownController(registry=registry, reporter=reporter)

        controller.trigger("Watcher stopped")

        assert "exiting gracefully" not in output.getvalue()

    async def test_without_collaborators(self):
        """Test that a bare controller still reaches its terminal state."""
        controller = ShutdownController()

        assert controller.trigger("Received SIGTERM") is True
        await asyncio.wait_for(controller.wait(), timeout=1.0)

    async def test_signals_delivered_twice(
        self, registry: WatchRegistry, guard: InstanceGuard
    ):
        """Test that two termination signals clean up exactly once."""
        controller = ShutdownController(registry=registry, guard=guard)
        controller.install()
        try:
            os.kill(os.getpid(), signal.SIGTERM)
            await asyncio.wait_for(controller.wait(), timeout=5.0)
            os.kill(os.getpid(), signal.SIGINT)
            await asyncio.sleep(0.1)
        finally:
            controller.restore()

        assert controller.cleanup_count == 1
        assert controller.reason == "Received SIGTERM"
        assert len(registry) == 0
        assert not guard.marker_path.exists()
