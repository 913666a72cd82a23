"""Middleware — before/after filters around a route handler.

A filter is a callable ``(request, response, arguments) -> Response | None``
or a ``Middleware`` subclass with ``before``/``after`` hooks. Return the
(possibly modified) response to continue, ``None`` to stop the request.
"""

from waypoint.middleware.pipeline import MiddlewareResolver, Phase, Pipeline
from waypoint.middleware.protocol import Filter, FilterResult, Middleware, MiddlewareRef, Position

__all__ = [
    "Filter",
    "FilterResult",
    "Middleware",
    "MiddlewareRef",
    "MiddlewareResolver",
    "Phase",
    "Pipeline",
    "Position",
]
