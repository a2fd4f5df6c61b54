"""
WorkspacesWatch Stream Reporter.

User-facing progress output as human text or NDJSON.
Requires Python 3.11+.
"""

import json
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any, TextIO

from utils.logger import LoggerMixin


class MessageName(str, Enum):
    """Kinds tagged on every reported message."""

    UNNAMED = "unnamed"
    EXCEPTION = "exception"
    INSTALL_FAILED = "install_failed"
    EXEC_FAILED = "exec_failed"


class ReportType(str, Enum):
    """Severity of a reported message."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class StreamReporter(LoggerMixin):
    """
    Writes progress records to a stream.

    Text mode prints one `➤ KIND: message` line per record. JSON mode
    prints one object per line with `type`, `name` and `data` keys.
    """

    def __init__(self, json_output: bool = False, stdout: TextIO | None = None) -> None:
        """
        Initialize the reporter.

        Args:
            json_output: Emit NDJSON records instead of text
            stdout: Output stream (defaults to sys.stdout)
        """
        self._json = json_output
        self._stdout = stdout or sys.stdout
        self._closed = False
        self._started_at = time.perf_counter()
        self.error_count = 0
        self.warning_count = 0

    @classmethod
    @contextmanager
    def start(cls, json_output: bool = False, stdout: TextIO | None = None) -> Iterator["StreamReporter"]:
        """
        Open a reporting session.

        The final summary line is written and the stream flushed even if
        the body raises.
        """
        report = cls(json_output=json_output, stdout=stdout)
        try:
            yield report
        finally:
            report.finalize()

    @property
    def is_open(self) -> bool:
        return not self._closed

    def report_info(self, name: MessageName, message: str) -> None:
        self._write(ReportType.INFO, name, message)

    def report_warning(self, name: MessageName, message: str) -> None:
        self.warning_count += 1
        self._write(ReportType.WARNING, name, message)

    def report_error(self, name: MessageName, message: str) -> None:
        self.error_count += 1
        self._write(ReportType.ERROR, name, message)

    def finalize(self) -> None:
        """Write the summary line and close the session. Idempotent."""
        if self._closed:
            return
        elapsed = time.perf_counter() - self._started_at
        self._write(ReportType.INFO, MessageName.UNNAMED, f"Done in {elapsed:.2f}s")
        self._closed = True
        self._stdout.flush()

    def _write(self, report_type: ReportType, name: MessageName, message: str) -> None:
        if self._closed:
            # Late completions during shutdown land here
            self.log.debug("report_after_close", type=report_type.value, data=message)
            return

        if self._json:
            record: dict[str, Any] = {
                "type": report_type.value,
                "name": name.value,
                "data": message,
            }
            line = json.dumps(record)
        else:
            label = name.value.upper() if name is not MessageName.UNNAMED else report_type.value.upper()
            line = f"➤ {label}: {message}"

        self._stdout.write(line + "\n")
        self._stdout.flush()
