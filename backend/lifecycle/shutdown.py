"""
WorkspacesWatch Shutdown Controller.

One-shot graceful shutdown driven by termination signals.
Requires Python 3.11+.
"""

import asyncio
import signal
from collections.abc import Iterable

from lifecycle.instance_guard import InstanceGuard
from reporting.reporter import MessageName, StreamReporter
from utils.logger import LoggerMixin
from watcher.registry import WatchRegistry

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownController(LoggerMixin):
    """
    Runs cleanup exactly once and publishes the shutdown event.

    The first trigger clears every watch, reports the exit, and releases
    the instance marker. Later triggers are ignored. Long-lived work
    observes shutdown through wait() / is_shutting_down instead of being
    interrupted directly.
    """

    def __init__(
        self,
        registry: WatchRegistry | None = None,
        guard: InstanceGuard | None = None,
        reporter: StreamReporter | None = None,
    ) -> None:
        """
        Initialize the controller.

        Args:
            registry: Watches to clear on shutdown
            guard: Instance marker to release on shutdown
            reporter: Active reporting session, if any
        """
        self.registry = registry
        self.guard = guard
        self.reporter = reporter
        self._event = asyncio.Event()
        self._triggered = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._signals: list[signal.Signals] = []
        self.reason: str | None = None
        self.cleanup_count = 0

    @property
    def is_shutting_down(self) -> bool:
        return self._triggered

    def install(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        signals: Iterable[signal.Signals] = DEFAULT_SIGNALS,
    ) -> None:
        """Route the given signals to handle_signal()."""
        self._loop = loop or asyncio.get_running_loop()
        for sig in signals:
            self._loop.add_signal_handler(sig, self.handle_signal, sig)
            self._signals.append(sig)
        self.log.debug("signal_handlers_installed", signals=[s.name for s in self._signals])

    def restore(self) -> None:
        """Remove the installed signal handlers."""
        if self._loop is None:
            return
        for sig in self._signals:
            self._loop.remove_signal_handler(sig)
        self._signals.clear()

    def handle_signal(self, sig: signal.Signals) -> None:
        self.trigger(f"Received {sig.name}")

    def trigger(self, reason: str) -> bool:
        """
        Run cleanup if it has not run yet.

        Args:
            reason: Shown in the exit notification

        Returns:
            True if this call performed the cleanup
        """
        if self._triggered:
            self.log.debug("shutdown_already_in_progress", reason=reason)
            return False
        self._triggered = True
        self.reason = reason

        try:
            self._cleanup(reason)
        finally:
            self._event.set()
        return True

    def _cleanup(self, reason: str) -> None:
        self.cleanup_count += 1
        cleared = self.registry.clear_all() if self.registry is not None else 0
        self.log.info("shutting_down", reason=reason, watches_cleared=cleared)

        if self.reporter is not None and self.reporter.is_open:
            self.reporter.report_info(MessageName.UNNAMED, f"{reason}, exiting gracefully.")

        if self.guard is not None:
            self.guard.release()

    async def wait(self) -> None:
        """Block until shutdown has been triggered."""
        await self._event.wait()
