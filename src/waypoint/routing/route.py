"""Route, handler references, options, and match results.

All records are frozen. The only post-registration change a route sees
(``name()``/``middleware()`` on the last registration) is applied by
replacing the stored record with ``dataclasses.replace``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, TypeAlias

from waypoint.errors import InvalidRegistration
from waypoint.middleware.protocol import MiddlewareRef, Position

HTTP_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH", "HEAD")
AJAX_METHODS: tuple[str, ...] = tuple(f"X{method}" for method in HTTP_METHODS)
ANY = "ANY"
SUPPORTED_METHODS: tuple[str, ...] = (*HTTP_METHODS, *AJAX_METHODS, ANY)

CONTROLLER_SEPARATORS: tuple[str, ...] = ("::", "@")


# -- Handler references --


@dataclass(frozen=True, slots=True)
class CallableHandler:
    """A plain function (or any non-class callable) bound to a route."""

    func: Callable[..., Any]

    @property
    def label(self) -> str:
        return getattr(self.func, "__qualname__", repr(self.func))


@dataclass(frozen=True, slots=True)
class ControllerAction:
    """A controller method bound to a route.

    ``controller`` is the class itself or a name resolved at dispatch.
    """

    controller: type | str
    action: str

    @property
    def controller_name(self) -> str:
        if isinstance(self.controller, str):
            return self.controller
        return self.controller.__qualname__

    @property
    def label(self) -> str:
        return f"{self.controller_name}::{self.action}"


HandlerRef: TypeAlias = CallableHandler | ControllerAction


def parse_execute(execute: Any) -> HandlerRef:
    """Normalise the ``execute`` argument of a registration call.

    Accepted shapes::

        handler_function
        (UserController, "show")      # or ["UserController", "show"]
        {UserController: "show"}
        "UserController::show"        # or "UserController@show"

    Raises ``InvalidRegistration`` for anything else.
    """
    if isinstance(execute, (CallableHandler, ControllerAction)):
        return execute

    if isinstance(execute, str):
        for separator in CONTROLLER_SEPARATORS:
            if separator in execute:
                controller, action = execute.split(separator, 1)
                return _controller_action(controller, action, execute)
        msg = f"Handler string {execute!r} must look like 'Controller::action'."
        raise InvalidRegistration(msg)

    if isinstance(execute, (tuple, list)):
        if len(execute) != 2:
            msg = f"Controller handler must be a (controller, action) pair, got {execute!r}."
            raise InvalidRegistration(msg)
        return _controller_action(execute[0], execute[1], execute)

    if isinstance(execute, Mapping):
        if len(execute) != 1:
            msg = f"Controller mapping must hold exactly one entry, got {execute!r}."
            raise InvalidRegistration(msg)
        ((controller, action),) = execute.items()
        return _controller_action(controller, action, execute)

    if isinstance(execute, type):
        msg = f"Bind a controller class with an action, e.g. ({execute.__name__}, 'index')."
        raise InvalidRegistration(msg)

    if callable(execute):
        return CallableHandler(execute)

    msg = f"Handler {execute!r} is not a callable, controller pair, or 'Controller::action' string."
    raise InvalidRegistration(msg)


def _controller_action(controller: Any, action: Any, original: Any) -> ControllerAction:
    if not isinstance(controller, (str, type)) or not isinstance(action, str):
        msg = f"Invalid controller handler {original!r}."
        raise InvalidRegistration(msg)
    controller = controller.strip() if isinstance(controller, str) else controller
    action = action.strip()
    if not controller or not action:
        msg = f"Invalid controller handler {original!r}."
        raise InvalidRegistration(msg)
    return ControllerAction(controller=controller, action=action)


def parse_methods(methods: str | Iterable[str]) -> frozenset[str]:
    """Normalise ``"get|post"``/``["GET", "POST"]`` into a validated set."""
    if isinstance(methods, str):
        methods = methods.split("|")
    normalised = frozenset(method.strip().upper() for method in methods if method.strip())
    if not normalised:
        msg = "At least one HTTP method is required."
        raise InvalidRegistration(msg)
    unsupported = sorted(normalised.difference(SUPPORTED_METHODS))
    if unsupported:
        msg = (
            f"Unsupported route method(s) {', '.join(unsupported)}. "
            f"Supported methods are: {', '.join(SUPPORTED_METHODS)}"
        )
        raise InvalidRegistration(msg)
    return normalised


# -- Options --


@dataclass(frozen=True, slots=True)
class MiddlewareSpec:
    """Middleware attached to a route or scope, kept per position."""

    both: tuple[MiddlewareRef, ...] = ()
    before: tuple[MiddlewareRef, ...] = ()
    after: tuple[MiddlewareRef, ...] = ()

    def add(self, refs: Iterable[MiddlewareRef], position: Position) -> MiddlewareSpec:
        refs = tuple(refs)
        if position is Position.BEFORE:
            return replace(self, before=(*self.before, *refs))
        if position is Position.AFTER:
            return replace(self, after=(*self.after, *refs))
        return replace(self, both=(*self.both, *refs))

    def merge(self, other: MiddlewareSpec) -> MiddlewareSpec:
        """Concatenate *other* after this spec, position by position."""
        return MiddlewareSpec(
            both=(*self.both, *other.both),
            before=(*self.before, *other.before),
            after=(*self.after, *other.after),
        )

    def for_phase(self, position: Position) -> tuple[MiddlewareRef, ...]:
        """``both`` entries followed by the positional ones."""
        if position is Position.AFTER:
            return (*self.both, *self.after)
        return (*self.both, *self.before)

    def __bool__(self) -> bool:
        return bool(self.both or self.before or self.after)


@dataclass(frozen=True, slots=True)
class RouteOptions:
    """Constraints and metadata a route carries.

    Built by combining the active scope with the options given to the
    registration call.
    """

    prefix: str = ""
    domain: str | None = None
    port: int | None = None
    ip: frozenset[str] = frozenset()
    name_prefix: str = ""
    middleware: MiddlewareSpec = MiddlewareSpec()
    controller_namespace: str | None = None
    controller_path: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


# -- Route records --


@dataclass(frozen=True, slots=True)
class Route:
    """A registered (methods, path template, handler, options) binding."""

    id: int
    methods: frozenset[str]
    path: str
    execute: HandlerRef
    options: RouteOptions = RouteOptions()
    name: str | None = None


@dataclass(frozen=True, slots=True)
class RequestContext:
    """The live request attributes the resolver filters on."""

    domain: str | None = None
    port: int | None = None
    ip: str | None = None


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful resolution.

    ``arguments`` holds domain captures followed by path captures.
    ``params`` maps placeholder names to values (first occurrence wins).
    """

    route: Route
    arguments: tuple[str, ...] = ()
    params: dict[str, str] = field(default_factory=dict)
