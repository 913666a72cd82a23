"""Match a live request against the route table.

Candidates are filtered by port, IP allow-list, domain, and finally the
path template. When several routes match, the most specific one wins:

1. fewest captured path arguments
2. most literal (static) characters in the path and domain templates
3. most constraints declared (domain, port, IP list)
4. registered for the exact request method, over ``ANY`` or the plain
   method an AJAX ``X`` variant falls back to
5. earliest registration
"""

import ipaddress
import logging
import re
from typing import TypeAlias

from waypoint.routing.paths import normalize_path
from waypoint.routing.patterns import PatternTable
from waypoint.routing.route import AJAX_METHODS, ANY, RequestContext, Route, RouteMatch
from waypoint.routing.table import RouteTable

logger = logging.getLogger("waypoint.routing")

Specificity: TypeAlias = tuple[int, int, int, int, int]


def candidate_methods(method: str) -> tuple[str, ...]:
    """Method lists to search for *method*, exact first.

    ::

        candidate_methods("GET")   # ("GET", "ANY")
        candidate_methods("XGET")  # ("XGET", "GET", "ANY")
    """
    method = method.upper()
    methods = [method]
    if method in AJAX_METHODS:
        methods.append(method[1:])
    if method != ANY:
        methods.append(ANY)
    return tuple(methods)


def resolve(
    table: RouteTable,
    patterns: PatternTable,
    method: str,
    path: str,
    context: RequestContext | None = None,
) -> RouteMatch | None:
    """Return the best match for *method* and *path*, or ``None``.

    Pure: neither the table nor the pattern table's contents change.
    """
    context = context or RequestContext()
    path = normalize_path(path)
    methods = candidate_methods(method)

    candidates: dict[int, tuple[Route, bool]] = {}
    for index, candidate_method in enumerate(methods):
        for route in table.for_method(candidate_method):
            candidates.setdefault(route.id, (route, index == 0))

    best: tuple[Specificity, RouteMatch] | None = None
    for route_id in sorted(candidates):
        route, exact = candidates[route_id]
        match = match_route(patterns, route, path, context)
        if match is None:
            continue
        score = specificity(patterns, route, exact=exact)
        if best is None or score > best[0]:
            best = (score, match)

    if best is None:
        logger.debug("No route for %s %s", method, path)
        return None
    logger.debug("Resolved %s %s to route #%d (%s)", method, path, best[1].route.id, best[1].route.path)
    return best[1]


def match_route(
    patterns: PatternTable,
    route: Route,
    path: str,
    context: RequestContext,
) -> RouteMatch | None:
    """Apply the route's constraints to the request; ``None`` if any fails."""
    options = route.options
    if options.port is not None and options.port != context.port:
        return None
    if options.ip and canonical_ip(context.ip) not in options.ip:
        return None

    domain_args: tuple[str, ...] = ()
    if options.domain:
        if not context.domain:
            return None
        captured = patterns.match(options.domain, context.domain, re.IGNORECASE)
        if captured is None:
            return None
        domain_args = captured

    path_args = patterns.match(route.path, path)
    if path_args is None:
        return None

    arguments = (*domain_args, *path_args)
    names = [token.name for token in patterns.tokens(options.domain or "")]
    names += [token.name for token in patterns.tokens(route.path)]
    params: dict[str, str] = {}
    for name, value in zip(names, arguments, strict=True):
        params.setdefault(name, value)
    return RouteMatch(route=route, arguments=arguments, params=params)


def specificity(patterns: PatternTable, route: Route, *, exact: bool) -> Specificity:
    """Sort key for competing matches; larger is more specific.

    Domain captures do not count against a route: declaring a domain,
    port, or IP list only adds to its specificity.
    """
    options = route.options
    captures = len(patterns.tokens(route.path))
    static = patterns.static_length(route.path)
    if options.domain:
        static += patterns.static_length(options.domain)
    constraints = sum((bool(options.domain), options.port is not None, bool(options.ip)))
    return (-captures, static, constraints, int(exact), -route.id)


def canonical_ip(address: str | None) -> str | None:
    """``2001:DB8:0::1`` -> ``2001:db8::1``; ``None`` when not an IP address."""
    if not address:
        return None
    try:
        return str(ipaddress.ip_address(address.strip()))
    except ValueError:
        return None
