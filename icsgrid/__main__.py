"""Command-line entry for icsgrid.

``serve`` (the default) runs the HTTP server; ``print`` fetches one calendar
and writes its printable HTML document.
"""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn, Optional

from . import __version__, run_print, run_server
from .time_utils import parse_day


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the icsgrid CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="icsgrid",
        description="icsgrid - ICS calendar proxy and calendar grid backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m icsgrid                                  # Start server on default port (4000)
  python -m icsgrid serve --port 8080                # Start server on port 8080
  python -m icsgrid print https://example.com/a.ics --view week -o week.html
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the HTTP server (default)")
    serve.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 4000, or ICSGRID_PORT)",
    )
    serve.add_argument("--bind", metavar="HOST", help="Address to bind (default: 0.0.0.0)")
    serve.add_argument("--config", metavar="PATH", help="YAML or JSON config file")

    printer = subparsers.add_parser("print", help="Write the print document of a calendar")
    printer.add_argument("url", help="Calendar URL (http or https)")
    printer.add_argument(
        "--view",
        default="month",
        choices=["month", "week", "work_week", "day", "agenda"],
        help="Calendar view (default: month)",
    )
    printer.add_argument("--date", type=parse_day, help="Reference day YYYY-MM-DD (default: today)")
    printer.add_argument("--from", dest="date_from", type=parse_day, help="Agenda range start")
    printer.add_argument("--to", dest="date_to", type=parse_day, help="Agenda range end")
    printer.add_argument("--week-start", dest="week_start", help="First weekday (name or 0-6)")
    printer.add_argument("--font-scale", dest="font_scale", type=float, default=1.0)
    printer.add_argument("--title", help="Document title")
    printer.add_argument("-o", "--output", help="Output file (default: stdout)")
    printer.add_argument("--config", metavar="PATH", help="YAML or JSON config file")

    return parser


def main(argv: Optional[list[str]] = None) -> NoReturn:
    """Run the icsgrid CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    if args.command == "print":
        sys.exit(run_print(args))

    run_server(args)
    sys.exit(0)


if __name__ == "__main__":
    main()
