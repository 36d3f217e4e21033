"""Command-line entry for dashboard_calendar."""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn

from . import run_server
from .exceptions import ConfigError


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the dashboard_calendar CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="dashboard_calendar",
        description="Dashboard calendar - aggregated ICS calendar feed server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m dashboard_calendar                         # Start server on default port (3000)
  python -m dashboard_calendar --port 8080             # Start server on port 8080
  python -m dashboard_calendar --config cal.yaml --dump  # Print aggregated events once
        """,
    )

    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 3000, or from DASHBOARD_PORT env var)",
    )
    parser.add_argument(
        "--host",
        metavar="HOST",
        help="Address to bind the web server to (default: 0.0.0.0, or DASHBOARD_HOST)",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Configuration file, JSON or YAML (default: ./config.json, or DASHBOARD_CONFIG)",
    )
    parser.add_argument(
        "--dump",
        action="store_true",
        help="Fetch all calendars once, print the event JSON and exit",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    return parser


def main() -> NoReturn:
    """Run the dashboard_calendar CLI."""
    parser = _create_parser()
    args = parser.parse_args()

    try:
        run_server(args)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(2)
    sys.exit(0)


if __name__ == "__main__":
    main()
