"""
WorkspacesWatch Reporting Package.

Progress output for the watch session.
Requires Python 3.11+.
"""

from reporting.reporter import MessageName, ReportType, StreamReporter

__all__ = ["MessageName", "ReportType", "StreamReporter"]
