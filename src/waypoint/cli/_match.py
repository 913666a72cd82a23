"""``waypoint resolve`` — show which route a request would hit."""

import argparse
import sys

from waypoint.cli._resolve import resolve_router
from waypoint.routing.route import RequestContext


def run_resolve(args: argparse.Namespace) -> None:
    """Resolve ``args.method``/``args.path`` and print the winning route.

    Exits with status 1 when nothing matches.
    """
    try:
        router = resolve_router(args.router)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    context = RequestContext(domain=args.host, port=args.port, ip=args.ip)
    match = router.resolve(args.method, args.path, context)
    if match is None:
        print(f"No route matches {args.method.upper()} {args.path}", file=sys.stderr)
        raise SystemExit(1)

    route = match.route
    print(f"route:     #{route.id} {'|'.join(sorted(route.methods))} {route.path}")
    if route.name:
        print(f"name:      {route.name}")
    print(f"handler:   {route.execute.label}")
    if match.params:
        for key, value in match.params.items():
            print(f"param:     {key} = {value}")
