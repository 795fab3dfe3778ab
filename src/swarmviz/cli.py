"""Command-line interface for swarm-viz."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from swarmviz import __version__


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="swarm-viz",
        description="Live visualization of agent swarm state",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v verbose, -vv trace)",
    )
    parser.add_argument("--host", help="Interface to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, help="Port to listen on (default: 3000)")
    parser.add_argument(
        "--demo",
        action="store_true",
        default=None,
        help="Force demo mode (scripted simulator, no discovery switching)",
    )
    parser.add_argument(
        "--overstory-dir",
        type=Path,
        help="Pin to one .overstory directory and disable auto-switching",
    )
    parser.add_argument(
        "--poll-ms",
        type=int,
        help="Broadcast tick interval in milliseconds (default: 500)",
    )
    parser.add_argument(
        "--project-root",
        type=Path,
        help="Directory holding .swarmviz/config.yaml and .env (default: cwd)",
    )
    return parser


def overrides_from_args(parsed: argparse.Namespace) -> dict[str, Any]:
    """Turn parsed flags into a config override layer (unset flags omitted)."""
    overrides: dict[str, Any] = {}

    def put(section: str, key: str, value: Any) -> None:
        if value is not None:
            overrides.setdefault(section, {})[key] = value

    put("server", "host", parsed.host)
    put("server", "port", parsed.port)
    put("source", "demo", parsed.demo)
    put("source", "overstory_dir", str(parsed.overstory_dir) if parsed.overstory_dir else None)
    put("polling", "interval_ms", parsed.poll_ms)
    if parsed.verbose:
        # Base verbosity is info (2)
        put("logging", "verbose", min(2 + parsed.verbose, 4))
    return overrides


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    from swarmviz.config import load_config
    from swarmviz.errors import FatalStartupError
    from swarmviz.logging import get_logger, setup_logging

    project_root = parsed.project_root or Path.cwd()
    config = load_config(project_root=project_root, overrides=overrides_from_args(parsed))
    setup_logging(config.logging)
    log = get_logger()

    from swarmviz.dashboard.server import serve

    try:
        asyncio.run(serve(config))
    except FatalStartupError as e:
        log.error("%s", e)
        return 1
    except KeyboardInterrupt:
        log.info("Interrupted")
    return 0


def main() -> int:
    """Console script entry point."""
    return run_cli(sys.argv[1:])
