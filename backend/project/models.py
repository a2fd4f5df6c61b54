"""
WorkspacesWatch Project Models.

Data structures describing a multi-package project and its workspaces.
Requires Python 3.11+.
"""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class Workspace:
    """A sub-package of the project, rooted at its own directory."""

    cwd: Path
    name: str

    def manifest_path(self, manifest_filename: str) -> Path:
        """Path of the manifest file observed for this workspace."""
        return self.cwd / manifest_filename

    def __str__(self) -> str:
        return self.name


@dataclass
class Project:
    """A loaded project: its root and every workspace it declares."""

    root: Path
    top_level_workspace: Workspace
    workspaces: list[Workspace] = field(default_factory=list)
    lockfile_name: str = "yarn.lock"

    @property
    def lockfile_path(self) -> Path:
        """Shared lockfile every workspace sync contends on."""
        return self.root / self.lockfile_name

    def workspace_by_name(self, name: str) -> Workspace | None:
        """Find a workspace by display name."""
        for ws in self.workspaces:
            if ws.name == name:
                return ws
        return None
