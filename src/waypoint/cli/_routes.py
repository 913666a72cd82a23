"""``waypoint routes`` — list registered routes."""

import argparse
import sys

from waypoint.cli._resolve import resolve_router
from waypoint.routing.route import Route


def format_route(route: Route) -> tuple[str, str, str]:
    """``(methods, location, handler)`` columns for one route."""
    methods = "|".join(sorted(route.methods))
    location = route.path
    if route.options.domain:
        location = f"{route.options.domain}{location}"
    if route.options.port is not None:
        location = f"{location} :{route.options.port}"
    handler = route.execute.label
    if route.name:
        handler = f"{handler} ({route.name})"
    return methods, location, handler


def run_routes(args: argparse.Namespace) -> None:
    """Print METHOD, PATH and HANDLER for every route of ``args.router``."""
    try:
        router = resolve_router(args.router)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    routes = router.routes(args.method.upper() if args.method else None)
    if not routes:
        print("No routes registered.")
        return

    rows = [format_route(route) for route in routes]
    max_methods = max(6, *(len(r[0]) for r in rows))  # "METHOD" header
    max_path = max(4, *(len(r[1]) for r in rows))  # "PATH" header

    fmt = f"{{:<{max_methods}}}  {{:<{max_path}}}  {{}}"
    print(fmt.format("METHOD", "PATH", "HANDLER"))
    sep_len = max_methods + max_path + 4 + max(len(r[2]) for r in rows)
    print("-" * min(sep_len, 80))
    for methods, path, handler in rows:
        print(fmt.format(methods, path, handler))
