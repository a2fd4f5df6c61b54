"""
WorkspacesWatch Lifecycle Package.

Single-instance guard and graceful shutdown.
Requires Python 3.11+.
"""

from lifecycle.instance_guard import InstanceGuard
from lifecycle.shutdown import ShutdownController

__all__ = ["InstanceGuard", "ShutdownController"]
