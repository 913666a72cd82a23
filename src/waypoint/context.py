"""Per-dispatch context via ContextVar.

Provides:
- ``dispatch_var``: the ``DispatchContext`` of the dispatch in progress.
- ``current_dispatch()``: read it, raising ``LookupError`` outside one.

Set by ``Router.dispatch`` before middleware and handler run and reset
afterwards, so concurrent routers never see each other's state.
"""

from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any

from waypoint.routing.route import Route


@dataclass(frozen=True, slots=True)
class DispatchContext:
    """The route being executed and what it was called with.

    ``controller`` is the resolved controller class (``None`` for plain
    function handlers); ``action`` the method name.
    """

    route: Route
    controller: type | None = None
    action: str | None = None
    arguments: tuple[Any, ...] = ()


dispatch_var: ContextVar[DispatchContext] = ContextVar("waypoint_dispatch")
"""The current dispatch. Set by the router around middleware and handler."""


def current_dispatch() -> DispatchContext:
    """Return the current dispatch context.

    Raises ``LookupError`` if called outside a dispatch.
    """
    return dispatch_var.get()
