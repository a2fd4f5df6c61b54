"""
WorkspacesWatch Project Package.

Project discovery and workspace models.
Requires Python 3.11+.
"""

from project.loader import find_project
from project.models import Project, Workspace

__all__ = ["Project", "Workspace", "find_project"]
