"""
WorkspacesWatch Project Loader.

Discovers the project root and enumerates its workspaces.
Requires Python 3.11+.
"""

import json
from pathlib import Path
from typing import Any

from project.models import Project, Workspace
from utils.config import Settings, get_settings
from utils.errors import ProjectNotFound
from utils.logger import get_logger

logger = get_logger("project.loader")


def read_manifest(manifest_path: Path) -> dict[str, Any]:
    """
    Read and decode a manifest file.

    Raises:
        ValueError: If the file is not a JSON object
        OSError: If the file cannot be read
    """
    data = json.loads(manifest_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{manifest_path} does not contain a JSON object")
    return data


def workspace_patterns(manifest: dict[str, Any]) -> list[str]:
    """Extract workspace glob patterns from a manifest's `workspaces` field."""
    declared = manifest.get("workspaces")
    if isinstance(declared, dict):
        declared = declared.get("packages")
    if not isinstance(declared, list):
        return []
    return [p for p in declared if isinstance(p, str) and p.strip()]


def find_project_root(cwd: Path, settings: Settings | None = None) -> Path:
    """
    Walk up from cwd and locate the project root.

    Preference order: nearest manifest declaring workspaces, nearest
    directory holding the lockfile, nearest manifest.
    """
    settings = settings or get_settings()
    manifest_name = settings.watcher.manifest_filename
    lockfile_name = settings.sync.lockfile_name

    nearest_manifest: Path | None = None
    nearest_lockfile: Path | None = None

    for directory in (cwd, *cwd.parents):
        manifest_path = directory / manifest_name
        if not manifest_path.is_file():
            continue
        if nearest_manifest is None:
            nearest_manifest = directory
        if nearest_lockfile is None and (directory / lockfile_name).is_file():
            nearest_lockfile = directory
        try:
            if workspace_patterns(read_manifest(manifest_path)):
                return directory
        except (OSError, ValueError) as e:
            logger.debug("manifest_unreadable", path=str(manifest_path), error=str(e))

    root = nearest_lockfile or nearest_manifest
    if root is None:
        raise ProjectNotFound(f"No {manifest_name} found in {cwd} or any parent directory")
    return root


def _make_workspace(directory: Path, manifest: dict[str, Any]) -> Workspace:
    name = manifest.get("name")
    if not isinstance(name, str) or not name:
        name = directory.name
    return Workspace(cwd=directory, name=name)


def find_project(cwd: Path, settings: Settings | None = None) -> Project:
    """
    Load the project containing cwd.

    Args:
        cwd: Directory to start discovery from
        settings: Settings override (defaults to cached settings)

    Returns:
        Project with the top-level workspace first in `workspaces`

    Raises:
        ProjectNotFound: If no root manifest is found or it cannot be read
    """
    settings = settings or get_settings()
    manifest_name = settings.watcher.manifest_filename

    root = find_project_root(cwd.resolve(), settings)
    try:
        root_manifest = read_manifest(root / manifest_name)
    except (OSError, ValueError) as e:
        raise ProjectNotFound(f"Cannot read {root / manifest_name}: {e}") from e

    top_level = _make_workspace(root, root_manifest)
    workspaces = [top_level]
    seen = {root}

    patterns = workspace_patterns(root_manifest)
    excluded: set[Path] = set()
    for pattern in patterns:
        if pattern.startswith("!"):
            excluded.update(p.resolve() for p in root.glob(pattern[1:].rstrip("/")))

    for pattern in patterns:
        if pattern.startswith("!"):
            continue
        for directory in sorted(root.glob(pattern.rstrip("/"))):
            directory = directory.resolve()
            if directory in seen or directory in excluded or not directory.is_dir():
                continue
            manifest_path = directory / manifest_name
            if not manifest_path.is_file():
                continue
            try:
                manifest = read_manifest(manifest_path)
            except (OSError, ValueError) as e:
                logger.warning("workspace_skipped", path=str(manifest_path), error=str(e))
                continue
            seen.add(directory)
            workspaces.append(_make_workspace(directory, manifest))

    logger.debug("project_loaded", root=str(root), workspaces=len(workspaces))

    return Project(
        root=root,
        top_level_workspace=top_level,
        workspaces=workspaces,
        lockfile_name=settings.sync.lockfile_name,
    )
