"""
WorkspacesWatch Project Lock.

Exclusive project-wide lock guarding dependency syncs.
Requires Python 3.11+.
"""

import asyncio
import fcntl
import os
from pathlib import Path
from types import TracebackType

from utils.logger import LoggerMixin


class ProjectLock(LoggerMixin):
    """
    Exclusive lock on the project's shared lock artifact.

    Coroutines of this process queue on an asyncio.Lock; the holder then
    takes an advisory flock on the artifact so that other processes
    touching the same project wait as well. The blocking flock call runs
    in a worker thread so the event loop keeps serving notifications.

    Usage:
        async with project_lock:
            ...
    """

    def __init__(self, path: Path) -> None:
        """
        Initialize the lock.

        Args:
            path: Lock artifact, created on first acquisition if missing
        """
        self.path = path
        self._local = asyncio.Lock()
        self._fd: int | None = None

    @property
    def locked(self) -> bool:
        return self._local.locked()

    async def acquire(self) -> None:
        await self._local.acquire()
        locking = asyncio.create_task(asyncio.to_thread(self._lock_file))
        try:
            self._fd = await asyncio.shield(locking)
        except asyncio.CancelledError:
            # The worker thread cannot be interrupted; drop its lock once it lands
            locking.add_done_callback(self._discard)
            self._local.release()
            raise
        except BaseException:
            self._local.release()
            raise
        self.log.debug("project_lock_acquired", path=str(self.path))

    def release(self) -> None:
        fd, self._fd = self._fd, None
        try:
            if fd is not None:
                try:
                    fcntl.flock(fd, fcntl.LOCK_UN)
                finally:
                    os.close(fd)
        finally:
            self._local.release()
            self.log.debug("project_lock_released", path=str(self.path))

    def _lock_file(self) -> int:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_CREAT | os.O_RDWR, 0o664)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
        except BaseException:
            os.close(fd)
            raise
        return fd

    def _discard(self, locking: "asyncio.Task[int]") -> None:
        if locking.cancelled() or locking.exception() is not None:
            return
        fd = locking.result()
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        self.log.debug("project_lock_discarded", path=str(self.path))

    async def __aenter__(self) -> "ProjectLock":
        await self.acquire()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
