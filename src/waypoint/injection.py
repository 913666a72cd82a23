"""Handler argument resolution and invocation.

Handlers declare what they need in their signature. For each parameter,
in order:

1. ``Request``/``Response`` annotation (or an unannotated parameter named
   ``request``/``response``) gets the live object
2. a scalar parameter (unannotated, ``str``, ``int``, ``float``, ``bool``,
   ``Any`` or an optional of these) consumes the next path argument,
   converted to the annotated type; ``*args`` takes all that remain
3. the parameter's default value
4. a provider registered on the ``Container`` for the annotation, else the
   annotated class constructed recursively
5. ``None`` for nullable parameters

Anything left raises ``UnresolvableParameter``.

Usage::

    container = Container()
    container.provide(Database, lambda: db)

    def show(request: Request, db: Database, user_id: int) -> str: ...

    response = invoke(show, ("42",), request, Response(), container)
"""

import contextlib
import inspect
import io
import json
import types
import typing
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from waypoint.errors import UnresolvableParameter
from waypoint.http.request import Request
from waypoint.http.response import Response

SCALAR_TYPES: tuple[type, ...] = (str, int, float, bool)
TRUE_VALUES = frozenset({"true", "1"})
FALSE_VALUES = frozenset({"false", "0"})

_EMPTY = inspect.Parameter.empty


# -- Parameter descriptions --


@dataclass(frozen=True, slots=True)
class ParameterSpec:
    """One handler parameter, with ``Optional[...]`` unwrapped.

    ``annotation`` is the unwrapped type (``inspect.Parameter.empty`` when
    the parameter is unannotated).
    """

    name: str
    annotation: Any = _EMPTY
    has_default: bool = False
    default: Any = None
    nullable: bool = False
    kind: inspect._ParameterKind = inspect.Parameter.POSITIONAL_OR_KEYWORD

    @property
    def is_scalar(self) -> bool:
        return (
            self.annotation is _EMPTY or self.annotation is Any or self.annotation in SCALAR_TYPES
        )

    @property
    def is_variadic(self) -> bool:
        return self.kind is inspect.Parameter.VAR_POSITIONAL

    @property
    def injects(self) -> type | None:
        """``Request`` or ``Response`` when this parameter receives one."""
        for target, name in ((Request, "request"), (Response, "response")):
            if self.annotation is _EMPTY and self.name == name:
                return target
            if inspect.isclass(self.annotation) and issubclass(self.annotation, target):
                return target
        return None


def unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """Split ``X | None`` into ``(X, True)``; other annotations pass through."""
    if typing.get_origin(annotation) not in (typing.Union, types.UnionType):
        return annotation, False
    args = typing.get_args(annotation)
    remaining = [arg for arg in args if arg is not type(None)]
    nullable = len(remaining) != len(args)
    if len(remaining) == 1:
        return remaining[0], nullable
    return annotation, nullable


def describe(target: Callable[..., Any]) -> tuple[ParameterSpec, ...]:
    """Describe the parameters of *target* (``**kwargs`` is skipped)."""
    signature = inspect.signature(target, eval_str=True)
    specs: list[ParameterSpec] = []
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_KEYWORD:
            continue
        annotation, nullable = unwrap_optional(param.annotation)
        has_default = param.default is not _EMPTY
        specs.append(
            ParameterSpec(
                name=param.name,
                annotation=annotation,
                has_default=has_default,
                default=param.default if has_default else None,
                nullable=nullable or (has_default and param.default is None),
                kind=param.kind,
            )
        )
    return tuple(specs)


def convert(value: Any, annotation: Any) -> Any:
    """Convert a captured path argument to *annotation*.

    Raises ``ValueError`` when the text does not fit the type.
    """
    if annotation is bool:
        if isinstance(value, bool):
            return value
        lowered = str(value).lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        msg = f"{value!r} is not a boolean (expected true/false/1/0)"
        raise ValueError(msg)
    if annotation in (int, float, str):
        return annotation(value)
    return value


def _label(target: Any) -> str:
    return getattr(target, "__qualname__", None) or repr(target)


# -- Container --


class Container:
    """Providers for handler dependencies, keyed by annotation.

    A provider is a zero-argument factory, called once per injection::

        container.provide(Database, lambda: db)
        container.instance(Settings, settings)

    Unregistered classes are built by resolving their constructor
    parameters the same way handler parameters are resolved.
    """

    __slots__ = ("_providers",)

    def __init__(self) -> None:
        self._providers: dict[Any, Callable[[], Any]] = {}

    def provide(self, annotation: Any, factory: Callable[[], Any]) -> None:
        self._providers[annotation] = factory

    def instance(self, annotation: Any, value: Any) -> None:
        """Always inject *value* for *annotation*."""
        self._providers[annotation] = lambda: value

    def has(self, annotation: Any) -> bool:
        return annotation in self._providers

    def resolve(
        self,
        annotation: Any,
        request: Request | None = None,
        response: Response | None = None,
        *,
        _resolving: frozenset[Any] = frozenset(),
    ) -> Any:
        """Return a value for *annotation* from a provider or by construction."""
        factory = self._providers.get(annotation)
        if factory is not None:
            return factory()
        return self.build(annotation, request, response, _resolving=_resolving)

    def can_build(self, annotation: Any) -> bool:
        """True for concrete classes that are not scalars or the HTTP objects."""
        return (
            inspect.isclass(annotation)
            and annotation not in SCALAR_TYPES
            and annotation.__module__ != "builtins"
            and not inspect.isabstract(annotation)
            and not getattr(annotation, "_is_protocol", False)
        )

    def build(
        self,
        cls: Any,
        request: Request | None = None,
        response: Response | None = None,
        *,
        _resolving: frozenset[Any] = frozenset(),
    ) -> Any:
        """Construct *cls*, resolving its constructor parameters recursively."""
        if cls in _resolving:
            msg = f"circular dependency on {_label(cls)}"
            raise UnresolvableParameter(_label(cls), "__init__", msg)
        if not self.can_build(cls):
            msg = f"{_label(cls)} is not a constructible class"
            raise UnresolvableParameter(_label(cls), "__init__", msg)
        try:
            specs = describe(cls)
        except ValueError as exc:
            raise UnresolvableParameter(_label(cls), "__init__", str(exc)) from exc
        args, kwargs = resolve_arguments(
            specs,
            (),
            request,
            response,
            self,
            target=_label(cls),
            _resolving=_resolving | {cls},
        )
        return cls(*args, **kwargs)


# -- Resolution --


def resolve_arguments(
    specs: Iterable[ParameterSpec],
    arguments: Iterable[Any],
    request: Request | None,
    response: Response | None,
    container: Container | None = None,
    *,
    target: str = "handler",
    _resolving: frozenset[Any] = frozenset(),
) -> tuple[list[Any], dict[str, Any]]:
    """Map *arguments* and dependencies onto *specs*.

    Returns positional and keyword arguments ready for the call. Path
    arguments left over after the last parameter are ignored.
    """
    container = container or Container()
    remaining = list(arguments)
    args: list[Any] = []
    kwargs: dict[str, Any] = {}

    for spec in specs:
        if spec.is_variadic:
            args.extend(_convert(target, spec, value) for value in remaining)
            remaining.clear()
            continue

        value = _resolve_one(target, spec, remaining, request, response, container, _resolving)
        if spec.kind is inspect.Parameter.KEYWORD_ONLY:
            kwargs[spec.name] = value
        else:
            args.append(value)

    return args, kwargs


def _resolve_one(
    target: str,
    spec: ParameterSpec,
    remaining: list[Any],
    request: Request | None,
    response: Response | None,
    container: Container,
    resolving: frozenset[Any],
) -> Any:
    injected = spec.injects
    if injected is Request and request is not None:
        return request
    if injected is Response and response is not None:
        return response

    if spec.is_scalar and remaining:
        return _convert(target, spec, remaining.pop(0))

    if spec.has_default:
        return spec.default

    if spec.annotation is not _EMPTY and (
        container.has(spec.annotation) or container.can_build(spec.annotation)
    ):
        return container.resolve(spec.annotation, request, response, _resolving=resolving)

    if spec.nullable:
        return None

    reason = "no path argument left" if spec.is_scalar else "no provider or constructible type"
    raise UnresolvableParameter(target, spec.name, reason)


def _convert(target: str, spec: ParameterSpec, value: Any) -> Any:
    try:
        return convert(value, spec.annotation)
    except (TypeError, ValueError) as exc:
        raise UnresolvableParameter(target, spec.name, str(exc)) from exc


# -- Invocation --


def invoke(
    target: Callable[..., Any],
    arguments: Iterable[Any],
    request: Request | None,
    response: Response,
    container: Container | None = None,
) -> Response:
    """Call *target* with resolved arguments and render its result onto *response*.

    Text the handler prints is captured and written to the body, followed
    by the rendered return value.
    """
    args, kwargs = resolve_arguments(
        describe(target),
        arguments,
        request,
        response,
        container,
        target=_label(target),
    )
    buffer = io.StringIO()
    with contextlib.redirect_stdout(buffer):
        result = target(*args, **kwargs)
    return render(result, response, printed=buffer.getvalue())


def render(result: Any, response: Response, *, printed: str = "") -> Response:
    """Fold a handler's return value into *response*.

    - ``Response`` replaces the current response
    - ``str``/``bytes`` are appended
    - ``dict``/``list`` are serialised as JSON
    - other iterables are appended chunk by chunk
    - ``None`` leaves the response as is
    - anything else is appended as ``str(value)``
    """
    if isinstance(result, Response):
        return result.append(printed)

    response = response.append(printed)
    if result is None:
        return response
    if isinstance(result, (str, bytes)):
        return response.append(result)
    if isinstance(result, (dict, list)):
        return response.with_content_type("application/json").append(json.dumps(result, default=str))
    if isinstance(result, Iterable):
        for chunk in result:
            response = response.append(chunk if isinstance(chunk, (str, bytes)) else str(chunk))
        return response
    return response.append(str(result))
