"""
WorkspacesWatch Runtime Package.

The top-level watch loop.
Requires Python 3.11+.
"""

from runtime.orchestrator import Orchestrator, WatchOptions

__all__ = ["Orchestrator", "WatchOptions"]
