"""Two-phase middleware pipeline.

One ``Pipeline`` is built per dispatch. It runs the ``before`` filters,
the handler, then the ``after`` filters::

    BEFORE -> HANDLER -> AFTER -> DONE
       \\         \\         \\
        `---------`---------`--> ABORTED

A filter returning a ``Response`` replaces the current response and the
chain continues. Returning ``None`` or ``False`` aborts: no handler, no
further filters, and the current response is what dispatch returns.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from waypoint._internal.loader import load_class
from waypoint.errors import MiddlewareContractError, MiddlewareNotFound
from waypoint.http.request import Request
from waypoint.http.response import Response
from waypoint.injection import Container
from waypoint.middleware.protocol import Middleware, MiddlewareRef, Position

if TYPE_CHECKING:
    from waypoint.routing.route import MiddlewareSpec

logger = logging.getLogger("waypoint.middleware")

# Name of the controller class attribute holding its middleware declarations
CONTROLLER_ATTRIBUTE = "middleware"


class Phase(Enum):
    BEFORE = "before"
    HANDLER = "handler"
    AFTER = "after"
    DONE = "done"
    ABORTED = "aborted"


class MiddlewareResolver:
    """Turns string references into ``Middleware`` classes.

    Looks in the explicit registry, then import strings, then the
    configured namespace module, then ``<path>/<Name>.py``. Results are
    cached per resolver.
    """

    __slots__ = ("_cache", "namespace", "path", "registry")

    def __init__(
        self,
        registry: Mapping[str, type[Middleware]] | None = None,
        *,
        namespace: str | None = None,
        path: str | Path | None = None,
    ) -> None:
        self.registry: dict[str, type[Middleware]] = dict(registry or {})
        self.namespace = namespace
        self.path = path
        self._cache: dict[str, type[Middleware]] = {}

    def register(self, name: str, cls: type[Middleware]) -> None:
        self.registry[name] = cls
        self._cache.pop(name, None)

    def resolve(self, name: str) -> type[Middleware]:
        cached = self._cache.get(name)
        if cached is not None:
            return cached
        cls = load_class(name, registry=self.registry, namespace=self.namespace, path=self.path)
        if cls is None:
            raise MiddlewareNotFound(name)
        if not issubclass(cls, Middleware):
            msg = f"Middleware class {cls.__qualname__!r} must extend waypoint.Middleware."
            raise MiddlewareContractError(msg)
        self._cache[name] = cls
        return cls


def controller_middleware(controller: type | None, action: str | None, position: Position) -> list[Any]:
    """Filters a controller class declares for *action* in *position*.

    The declaration is a class attribute::

        class AdminController(Controller):
            middleware = {
                "both": [RequireLogin],
                "before": ["AuditLog"],
                "delete": {"before": [RequireAdmin]},
            }

    Order: class ``both``, class positional, then the action's ``both``
    and positional entries.
    """
    if controller is None:
        return []
    declared = getattr(controller, CONTROLLER_ATTRIBUTE, None)
    if not isinstance(declared, Mapping):
        return []

    key = position.value
    refs = [*_as_list(declared.get("both")), *_as_list(declared.get(key))]
    per_action = declared.get(action) if action else None
    if isinstance(per_action, Mapping):
        refs += [*_as_list(per_action.get("both")), *_as_list(per_action.get(key))]
    return refs


def collect(
    spec: MiddlewareSpec,
    controller: type | None = None,
    action: str | None = None,
) -> tuple[list[Any], list[Any]]:
    """Ordered ``(before, after)`` filter lists for one dispatch."""
    before = [*controller_middleware(controller, action, Position.BEFORE), *spec.for_phase(Position.BEFORE)]
    after = [*controller_middleware(controller, action, Position.AFTER), *spec.for_phase(Position.AFTER)]
    return before, after


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class Pipeline:
    """Runs the filters of one dispatch around its handler.

    Middleware classes are instantiated at most once per pipeline and run
    at most once per phase.
    """

    __slots__ = ("_after", "_before", "_instances", "container", "phase", "resolver")

    def __init__(
        self,
        before: Sequence[MiddlewareRef],
        after: Sequence[MiddlewareRef],
        *,
        resolver: MiddlewareResolver | None = None,
        container: Container | None = None,
    ) -> None:
        self._before = tuple(before)
        self._after = tuple(after)
        self.resolver = resolver or MiddlewareResolver()
        self.container = container or Container()
        self._instances: dict[type, Middleware] = {}
        self.phase = Phase.BEFORE

    @property
    def aborted(self) -> bool:
        return self.phase is Phase.ABORTED

    def run(
        self,
        request: Request,
        response: Response,
        arguments: tuple[Any, ...],
        handler: Callable[[Response], Response],
    ) -> Response:
        """Execute the full pipeline; *handler* receives the current response."""
        self.phase = Phase.BEFORE
        response = self._run_phase(Position.BEFORE, self._before, request, response, arguments)
        if self.aborted:
            return response

        self.phase = Phase.HANDLER
        response = handler(response)

        self.phase = Phase.AFTER
        response = self._run_phase(Position.AFTER, self._after, request, response, arguments)
        if not self.aborted:
            self.phase = Phase.DONE
        return response

    def _run_phase(
        self,
        position: Position,
        refs: Iterable[MiddlewareRef],
        request: Request,
        response: Response,
        arguments: tuple[Any, ...],
    ) -> Response:
        seen: set[type] = set()
        for ref in refs:
            hook, cls = self._hook(ref, position, request, response)
            if cls is not None:
                if cls in seen:
                    continue
                seen.add(cls)

            result = hook(request, response, arguments)
            if isinstance(result, Response):
                response = result
                continue
            if result is None or result is False:
                logger.debug("Middleware %s aborted the request in %s phase", _label(ref), position.value)
                self.phase = Phase.ABORTED
                return response
            msg = (
                f"Middleware {_label(ref)} returned {type(result).__name__}; "
                "expected a Response, or None to stop the request."
            )
            raise MiddlewareContractError(msg)
        return response

    def _hook(
        self,
        ref: MiddlewareRef,
        position: Position,
        request: Request,
        response: Response,
    ) -> tuple[Callable[..., Any], type | None]:
        """Return the callable to run for *ref* and its class, if class-based.

        Classes are built through the container, so their constructors may
        ask for the request, the response, or registered dependencies.
        """
        if isinstance(ref, str):
            ref = self.resolver.resolve(ref)

        if inspect.isclass(ref):
            if not issubclass(ref, Middleware):
                msg = f"Middleware class {ref.__qualname__!r} must extend waypoint.Middleware."
                raise MiddlewareContractError(msg)
            instance = self._instances.get(ref)
            if instance is None:
                instance = self.container.resolve(ref, request, response)
                self._instances[ref] = instance
            return getattr(instance, position.value), ref

        if isinstance(ref, Middleware):
            return getattr(ref, position.value), type(ref)

        if callable(ref):
            return ref, None

        msg = f"Middleware must be a callable, a Middleware class, or a class name; got {ref!r}."
        raise MiddlewareContractError(msg)


def _label(ref: Any) -> str:
    if isinstance(ref, str):
        return ref
    return getattr(ref, "__qualname__", None) or type(ref).__qualname__
