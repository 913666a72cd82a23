"""Waypoint CLI — inspect a router's route table.

Entry point registered as ``waypoint`` in ``pyproject.toml``::

    [project.scripts]
    waypoint = "waypoint.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``waypoint`` command."""
    parser = argparse.ArgumentParser(
        prog="waypoint",
        description="Waypoint — inspect and test HTTP route tables.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- waypoint routes --------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List registered routes")
    routes_parser.add_argument("router", help="Import string (e.g. myapp.routes:router)")
    routes_parser.add_argument("--method", default=None, help="Only routes for this method")

    # -- waypoint resolve -------------------------------------------------
    resolve_parser = subparsers.add_parser("resolve", help="Show which route a request matches")
    resolve_parser.add_argument("router", help="Import string (e.g. myapp.routes:router)")
    resolve_parser.add_argument("method", help="HTTP method (GET, POST, XGET, ...)")
    resolve_parser.add_argument("path", help="Request path")
    resolve_parser.add_argument("--host", default=None, help="Request host name")
    resolve_parser.add_argument("--port", type=int, default=None, help="Request port")
    resolve_parser.add_argument("--ip", default=None, help="Client IP address")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from waypoint.cli._routes import run_routes

        run_routes(args)
    elif args.command == "resolve":
        from waypoint.cli._match import run_resolve

        run_resolve(args)
