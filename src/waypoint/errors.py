"""Waypoint exception hierarchy.

Shared across the route table, resolver, pipeline, and invoker so every
module raises and catches the same types.

Registration-time errors derive from ``ConfigurationError`` and always
propagate: misconfiguration is caught when routes are declared, not when
the first request arrives.
"""

from dataclasses import dataclass


class WaypointError(Exception):
    """Base for all waypoint-specific errors."""


class ConfigurationError(WaypointError):
    """Raised when routes or router configuration are invalid."""


class InvalidRegistration(ConfigurationError):  # noqa: N818
    """A route was registered with an unsupported method or handler shape.

    The table is left untouched: validation runs before anything is stored.
    """


class DanglingModifier(ConfigurationError):  # noqa: N818
    """``name()`` or ``middleware()`` was called before any route exists."""


class DuplicateName(ConfigurationError):  # noqa: N818
    """A route name is already taken by another registration."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Route name {name!r} is already registered.")


class DuplicatePatternKey(ConfigurationError):  # noqa: N818
    """A placeholder key is already present in the pattern table."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Pattern key {key!r} is already defined.")


@dataclass(frozen=True, slots=True)
class HTTPError(WaypointError):
    """An error that maps directly to an HTTP status code.

    Callers translate these into responses; the router never does.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """404 — generic not found."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class RouteNotFound(NotFound):
    """No route matched and no not-found handler is configured."""

    def __init__(self, method: str, path: str) -> None:
        super().__init__(detail=f"No route matches {method} {path!r}")


class ControllerNotFound(WaypointError):  # noqa: N818
    """A controller name could not be resolved to a class."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Controller {name!r} not found.")


class MethodNotFound(WaypointError):  # noqa: N818
    """The resolved controller has no such action."""

    def __init__(self, controller: str, action: str) -> None:
        self.controller = controller
        self.action = action
        super().__init__(f"Method {action!r} not found in {controller!r}.")


class UnresolvableParameter(WaypointError):  # noqa: N818
    """The invoker cannot produce a value for a handler parameter."""

    def __init__(self, target: str, parameter: str, reason: str = "") -> None:
        self.target = target
        self.parameter = parameter
        msg = f"Cannot resolve parameter {parameter!r} of {target}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class MiddlewareNotFound(WaypointError):  # noqa: N818
    """A string middleware reference could not be resolved to a class."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Middleware class {name!r} not found.")


class MiddlewareContractError(WaypointError):
    """A filter returned something other than a response or nothing."""
