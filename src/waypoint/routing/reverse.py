"""Reverse routing — build paths and URLs from route names.

``reverse`` never fails: an unknown name is treated as a literal path,
placeholders without a value stay in place, and extra values are ignored.
"""

from collections.abc import Mapping
from typing import Any

from waypoint.routing.patterns import TOKEN_RE, PatternTable
from waypoint.routing.route import Route
from waypoint.routing.table import RouteTable

DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}


def substitute(template: str, arguments: Mapping[str, Any]) -> str:
    """Replace every ``:key``/``{key}`` with ``str(arguments[key])`` when present.

    ::

        substitute("/user/{id}/{slug}", {"id": 5, "slug": "admin"})  # "/user/5/admin"
        substitute("/user/{id}", {})                                  # "/user/{id}"
    """

    def _replace(match: Any) -> str:
        key = match.group("brace") or match.group("colon")
        if key in arguments:
            return str(arguments[key])
        return match.group(0)

    return TOKEN_RE.sub(_replace, template)


def choose_variant(
    routes: tuple[Route, ...],
    patterns: PatternTable,
    arguments: Mapping[str, Any],
) -> Route:
    """Pick the longest variant whose placeholders all have values.

    Falls back to the longest variant when none is fully satisfied.
    """
    for route in routes:
        if all(token.name in arguments for token in patterns.tokens(route.path)):
            return route
    return routes[0]


def reverse(
    table: RouteTable,
    patterns: PatternTable,
    name: str,
    arguments: Mapping[str, Any] | None = None,
) -> str:
    """Render the path of route *name*."""
    arguments = arguments or {}
    routes = table.by_name(name)
    if not routes:
        return substitute(name, arguments)
    return substitute(choose_variant(routes, patterns, arguments).path, arguments)


def reverse_url(
    table: RouteTable,
    patterns: PatternTable,
    name: str,
    arguments: Mapping[str, Any] | None = None,
    *,
    scheme: str = "http",
    host: str = "localhost",
    port: int | None = None,
) -> str:
    """Render an absolute URL for route *name*.

    The route's own domain and port take precedence over *host*/*port*.
    Default ports for the scheme are omitted.
    """
    arguments = arguments or {}
    routes = table.by_name(name)
    if routes:
        route = choose_variant(routes, patterns, arguments)
        path = substitute(route.path, arguments)
        if route.options.domain:
            host = substitute(route.options.domain, arguments)
        if route.options.port is not None:
            port = route.options.port
    else:
        path = substitute(name, arguments)

    authority = host
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        authority = f"{host}:{port}"
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{scheme}://{authority}{path}"
