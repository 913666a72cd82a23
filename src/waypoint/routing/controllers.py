"""Controllers — class lookup, automatic routes, and resource routes.

A controller is any class whose methods serve as route handlers.
Subclassing ``Controller`` is optional; it only documents the class
attributes the router reads:

- ``middleware``: filters for the whole class or per action (see
  ``waypoint.middleware.pipeline.controller_middleware``)
- ``names``: route names for automatically registered actions
"""

import inspect
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar

from waypoint._internal.loader import load_class
from waypoint.errors import ControllerNotFound, MethodNotFound
from waypoint.injection import describe

_HTTP_VERBS = frozenset(
    {"get", "post", "put", "patch", "head", "delete", "options", "any"}
    | {f"x{verb}" for verb in ("get", "post", "put", "patch", "head", "delete", "options")}
)
_INDEX_ACTIONS = frozenset({"index", "main"})
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

# Placeholder key per handler parameter type
_TYPE_KEYS: dict[Any, str] = {int: "int", float: "float", str: "string", bool: "bool"}


class Controller:
    """Optional base class for controllers.

    ::

        class PhotoController(Controller):
            middleware = {"both": [RequireLogin], "destroy": {"before": [RequireOwner]}}
            names = {"index": "photos.index"}

            def index(self) -> str: ...
            def get_show(self, photo_id: int) -> str: ...
    """

    middleware: ClassVar[Mapping[str, Any]] = {}
    names: ClassVar[Mapping[str, str]] = {}


class ControllerRegistry:
    """Resolves controller references to classes.

    Lookup order: registered classes, import strings, the configured
    namespace module, then ``<path>/<Name>.py``. A scope may override
    namespace and path for the routes it contains.
    """

    __slots__ = ("_classes", "namespace", "path")

    def __init__(self, *, namespace: str | None = None, path: str | Path | None = None) -> None:
        self.namespace = namespace
        self.path = path
        self._classes: dict[str, type] = {}

    def register(self, cls: type, name: str | None = None) -> None:
        self._classes[name or cls.__name__] = cls

    def find(
        self,
        reference: type | str,
        *,
        namespace: str | None = None,
        path: str | Path | None = None,
    ) -> type | None:
        """Like ``resolve`` but returns ``None`` instead of raising."""
        if isinstance(reference, type):
            return reference
        return load_class(
            reference,
            registry=self._classes,
            namespace=namespace or self.namespace,
            path=path or self.path,
        )

    def resolve(
        self,
        reference: type | str,
        *,
        namespace: str | None = None,
        path: str | Path | None = None,
    ) -> type:
        cls = self.find(reference, namespace=namespace, path=path)
        if cls is None:
            raise ControllerNotFound(str(reference))
        return cls


def action_method(controller: type, action: str) -> Any:
    """Return the unbound function for *action*, or raise ``MethodNotFound``."""
    func = getattr(controller, action, None) if not action.startswith("_") else None
    if func is None or not callable(func):
        raise MethodNotFound(controller.__qualname__, action)
    return func


# -- Automatic routes --


@dataclass(frozen=True, slots=True)
class ActionRoute:
    """A route derived from a controller action."""

    methods: str
    path: str
    action: str
    name: str | None = None


def split_action(name: str) -> list[str]:
    """Split an action name on underscores and capitalisation.

    ::

        split_action("get_user_profile")  # ["get", "user", "profile"]
        split_action("getUserProfile")    # ["get", "user", "profile"]
    """
    words: list[str] = []
    for part in name.split("_"):
        words += [word.lower() for word in _CAMEL_BOUNDARY.split(part) if word]
    return words


def public_actions(controller: type) -> Iterator[str]:
    """Public methods of *controller* in definition order, base classes first.

    Methods defined on ``Controller`` or ``object`` are excluded.
    """
    seen: set[str] = set()
    for klass in reversed(controller.__mro__):
        if klass in (object, Controller):
            continue
        for name, value in vars(klass).items():
            if name.startswith("_") or name in seen:
                continue
            if inspect.isfunction(value):
                seen.add(name)
                yield name


def action_placeholders(func: Any) -> list[str]:
    """Path placeholders for the scalar parameters of *func*.

    Numbering restarts per type and starts at the second occurrence:
    ``(a: int, b: int, c: str)`` gives ``[":int", ":int1", ":string"]``.
    Request/response and dependency parameters add nothing.
    """
    specs = describe(func)[1:]  # self
    counts: dict[str, int] = {}
    placeholders: list[str] = []
    for spec in specs:
        if spec.kind not in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            continue
        if spec.injects is not None:
            continue
        if spec.annotation is inspect.Parameter.empty or spec.annotation is Any:
            placeholders.append(":any")
            continue
        key = _TYPE_KEYS.get(spec.annotation)
        if key is None:
            continue
        index = counts.get(key, 0)
        counts[key] = index + 1
        placeholders.append(f":{key}{index or ''}")
    return placeholders


def action_route(controller: type, action: str, prefix: str = "") -> ActionRoute:
    """Derive the method and path for one action.

    A leading HTTP verb picks the method (GET otherwise) and is dropped
    from the path unless it is the only word: ``delete(self, item_id: int)``
    becomes ``DELETE /delete/:int``. ``index`` and ``main`` contribute no
    path segment.
    """
    words = split_action(action)
    method = "GET"
    if words and words[0] in _HTTP_VERBS:
        method = words[0].upper()
        if len(words) > 1:
            words.pop(0)

    segments = [prefix.strip("/")] if prefix.strip("/") else []
    if words and words[0] not in _INDEX_ACTIONS:
        segments += words
    segments += action_placeholders(getattr(controller, action))

    names = getattr(controller, "names", None) or {}
    return ActionRoute(
        methods=method,
        path="/" + "/".join(segments),
        action=action,
        name=names.get(action),
    )


def controller_prefix(controller: type, prefix: str = "") -> str:
    """Route prefix for *controller*.

    ``IndexController`` and ``MainController`` append their short name, so
    ``router.controller(IndexController, "/site")`` serves ``/site/index/...``.
    """
    prefix = prefix.strip("/")
    short = controller.__name__.removesuffix("Controller").lower()
    if short in _INDEX_ACTIONS:
        prefix = f"{prefix}/{short}" if prefix else short
    return prefix


def automatic_routes(controller: type, prefix: str = "") -> list[ActionRoute]:
    """One route per public action of *controller*, in definition order."""
    prefix = controller_prefix(controller, prefix)
    return [action_route(controller, action, prefix) for action in public_actions(controller)]


# -- Resource routes --

RESOURCE_ACTIONS: tuple[tuple[str, str, str], ...] = (
    ("index", "GET", ""),
    ("create", "GET", "/create"),
    ("store", "POST", ""),
    ("show", "GET", "/{%s}"),
    ("edit", "GET", "/{%s}/edit"),
    ("update", "PUT|PATCH", "/{%s}"),
    ("destroy", "DELETE", "/{%s}"),
)


def resource_routes(name: str, controller: type | None = None) -> list[ActionRoute]:
    """The conventional CRUD routes for resource *name*.

    ::

        resource_routes("photos")
        # index   GET        /photos
        # create  GET        /photos/create
        # store   POST       /photos
        # show    GET        /photos/{photos}
        # edit    GET        /photos/{photos}/edit
        # update  PUT|PATCH  /photos/{photos}
        # destroy DELETE     /photos/{photos}

    When *controller* is given, only the actions it defines are included.
    """
    name = name.strip("/")
    key = name.rsplit("/", 1)[-1]
    routes: list[ActionRoute] = []
    for action, methods, suffix in RESOURCE_ACTIONS:
        if controller is not None and not callable(getattr(controller, action, None)):
            continue
        path = f"/{name}{suffix % key if '%s' in suffix else suffix}"
        routes.append(ActionRoute(methods=methods, path=path, action=action))
    return routes
