"""Middleware protocol, base class, and positions.

A middleware ("filter") is either a plain callable::

    def require_token(request: Request, response: Response, arguments: tuple) -> Response | None:
        if "authorization" not in request.headers:
            return None  # stop: nothing else runs for this request
        return response

or a ``Middleware`` subclass implementing ``before`` and ``after`` with the
same signature. Classes are instantiated once per dispatch.

Return values drive the pipeline: a ``Response`` replaces the current one
and the chain continues; ``None`` (or ``False``) halts the request.
"""

from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol, TypeAlias

from waypoint.http.request import Request
from waypoint.http.response import Response

# What a filter may return
FilterResult: TypeAlias = Response | None


class Position(Enum):
    """Where a middleware runs relative to the handler."""

    BOTH = "both"
    BEFORE = "before"
    AFTER = "after"


class Filter(Protocol):
    """Protocol for function middleware."""

    def __call__(
        self, request: Request, response: Response, arguments: tuple[Any, ...]
    ) -> FilterResult: ...


class Middleware:
    """Base class for class-based middleware.

    Override one or both hooks; the defaults pass the response through::

        class Timing(Middleware):
            def before(self, request, response, arguments):
                self.started = time.monotonic()
                return response

            def after(self, request, response, arguments):
                elapsed = time.monotonic() - self.started
                return response.with_header("X-Time", f"{elapsed:.3f}")
    """

    def before(
        self, request: Request, response: Response, arguments: tuple[Any, ...]
    ) -> FilterResult:
        return response

    def after(
        self, request: Request, response: Response, arguments: tuple[Any, ...]
    ) -> FilterResult:
        return response


# A middleware reference as accepted at registration time
MiddlewareRef: TypeAlias = Callable[..., Any] | type[Middleware] | str
