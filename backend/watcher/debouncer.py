"""
WorkspacesWatch Debouncer.

Coalesces bursts of manifest events into a single action per quiet period.
Requires Python 3.11+.
"""

import asyncio
from collections.abc import Callable, Coroutine
from enum import Enum
from typing import Any, Protocol


class TimerHandle(Protocol):
    """Cancellable pending callback."""

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """
    Timing seam used by the debouncer and the registry.

    An asyncio event loop satisfies it directly.
    """

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...

    def create_task(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]: ...


class DebounceState(str, Enum):
    """Per-entry debounce state."""

    IDLE = "idle"
    PENDING = "pending"


class Debouncer:
    """
    Restartable quiet-period timer for one watched manifest.

    Every touch() (re)arms the timer; the action runs only when the timer
    elapses without another touch. The handle of the armed timer is kept
    in `handle` so callers can inspect and cancel it.
    """

    def __init__(self, delay: float, scheduler: Scheduler) -> None:
        """
        Initialize the debouncer.

        Args:
            delay: Quiet period in seconds
            scheduler: Source of timers
        """
        self._delay = delay
        self._scheduler = scheduler
        self.handle: TimerHandle | None = None

    @property
    def state(self) -> DebounceState:
        return DebounceState.PENDING if self.handle is not None else DebounceState.IDLE

    @property
    def delay(self) -> float:
        return self._delay

    def touch(self, action: Callable[[], Any]) -> bool:
        """
        Record a change notification.

        Args:
            action: Called once the quiet period elapses undisturbed

        Returns:
            True if this touch moved the debouncer from idle to pending
        """
        started = self.handle is None
        if self.handle is not None:
            self.handle.cancel()
        self.handle = self._scheduler.call_later(self._delay, self._fire, action)
        return started

    def cancel(self) -> bool:
        """
        Drop the pending timer without running the action.

        Returns:
            True if a timer was pending
        """
        if self.handle is None:
            return False
        self.handle.cancel()
        self.handle = None
        return True

    def _fire(self, action: Callable[[], Any]) -> None:
        self.handle = None
        action()
