"""CLI entry point for swarm-viz."""

import sys


def main() -> int:
    """Main entry point for the swarm-viz CLI."""
    from swarmviz.cli import run_cli

    return run_cli(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
