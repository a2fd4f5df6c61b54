"""
WorkspacesWatch Instance Guard.

Single-instance enforcement through a PID marker file.
Requires Python 3.11+.
"""

import os
from pathlib import Path
from types import TracebackType

from utils.errors import AlreadyRunning
from utils.logger import LoggerMixin


class InstanceGuard(LoggerMixin):
    """
    Owns the PID marker of a running watcher.

    An existing marker is a hard failure: the guard never waits for,
    overwrites, or removes a marker it did not create.
    """

    def __init__(self, marker_path: Path) -> None:
        """
        Initialize the guard.

        Args:
            marker_path: File that records the owning process id
        """
        self.marker_path = marker_path
        self._owned = False

    @property
    def owned(self) -> bool:
        """True while this process holds the marker."""
        return self._owned

    def acquire(self) -> None:
        """
        Create the marker with the current process id.

        Raises:
            AlreadyRunning: If the marker already exists
        """
        if self._owned:
            return

        try:
            # "x" fails if the file exists, so an existing marker is never touched
            with open(self.marker_path, "x", encoding="utf-8") as f:
                f.write(str(os.getpid()))
        except FileExistsError as e:
            raise AlreadyRunning(self.marker_path) from e

        self._owned = True
        self.log.debug("instance_marker_written", path=str(self.marker_path), pid=os.getpid())

    def release(self) -> bool:
        """
        Remove the marker if this process created it. Idempotent.

        Returns:
            True if the marker was removed by this call
        """
        if not self._owned:
            return False

        self._owned = False
        try:
            self.marker_path.unlink()
        except FileNotFoundError:
            self.log.warning("instance_marker_missing", path=str(self.marker_path))
            return False

        self.log.debug("instance_marker_removed", path=str(self.marker_path))
        return True

    def __enter__(self) -> "InstanceGuard":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
