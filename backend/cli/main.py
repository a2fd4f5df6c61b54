"""
WorkspacesWatch Command Line Interface.

Watches every workspace manifest of a project and re-syncs dependencies
on change.
Requires Python 3.11+.

Usage:
    workspaces-watch
    workspaces-watch --exec "echo Hello world!"
    workspaces-watch --pid-file /tmp/workspaces-watch.pid --json
"""

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

from runtime.orchestrator import Orchestrator, WatchOptions
from utils.config import get_settings
from utils.errors import AlreadyRunning, ProjectNotFound
from utils.logger import configure_logging


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="workspaces-watch",
        description=(
            "Watch for changes in all workspaces, installing, updating, and removing "
            "packages on demand. Similar to an install, but keeps watching every "
            f"{settings.watcher.manifest_filename} and updates dependencies as necessary."
        ),
    )
    parser.add_argument("--json", action="store_true", help="Format the output as an NDJSON stream")
    parser.add_argument(
        "--inline-builds",
        action="store_true",
        help="Verbosely print the output of the build steps of dependencies",
    )
    parser.add_argument("--skip-builds", action="store_true", help="Skip the build step altogether")
    parser.add_argument(
        "--exec",
        dest="exec_command",
        metavar="CMD",
        help="Command to execute in the changed workspace after every update",
    )
    parser.add_argument("--pid-file", type=Path, metavar="PATH", help="PID file to use")
    parser.add_argument(
        "--cwd",
        type=Path,
        default=Path.cwd(),
        help="Directory to start project discovery from (default: current directory)",
    )
    return parser


def parse_options(argv: Sequence[str] | None = None) -> WatchOptions:
    args = build_parser().parse_args(argv)
    return WatchOptions(
        cwd=args.cwd,
        json=args.json,
        inline_builds=args.inline_builds,
        skip_builds=args.skip_builds,
        exec_command=args.exec_command,
        pid_file=args.pid_file,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the workspaces-watch console script."""
    options = parse_options(argv)
    configure_logging()

    try:
        return asyncio.run(Orchestrator(options).run())
    except (AlreadyRunning, ProjectNotFound) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
