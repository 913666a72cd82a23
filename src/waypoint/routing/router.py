"""The Router — registration, scopes, resolution, and dispatch.

Registration happens once at startup; ``dispatch`` then resolves exactly
one route per request and runs it through the middleware pipeline.

Basic usage::

    from waypoint import Request, Router

    router = Router()
    router.get("/", lambda: "home")
    router.get("/user/:int", show_user).name("user.show")

    with router:  # saves the route cache on exit when configured
        response = router.dispatch(Request.from_url("GET", "http://localhost/user/5"))

    router.route("user.show", {"int": 5})  # "/user/5"
"""

import ipaddress
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from types import TracebackType
from typing import Any, TypeAlias

from waypoint.cache import RouteCache
from waypoint.config import RouterConfig
from waypoint.context import DispatchContext, dispatch_var
from waypoint.errors import ConfigurationError, InvalidRegistration, RouteNotFound
from waypoint.http.request import Request
from waypoint.http.response import Response
from waypoint.injection import Container, invoke
from waypoint.middleware.pipeline import MiddlewareResolver, Pipeline, collect
from waypoint.middleware.protocol import Middleware, MiddlewareRef, Position
from waypoint.routing import resolver, reverse
from waypoint.routing.controllers import (
    ControllerRegistry,
    action_method,
    automatic_routes,
    resource_routes,
)
from waypoint.routing.paths import expand_optional, join_paths, normalize_path
from waypoint.routing.patterns import PatternTable
from waypoint.routing.route import (
    HTTP_METHODS,
    SUPPORTED_METHODS,
    CallableHandler,
    ControllerAction,
    HandlerRef,
    MiddlewareSpec,
    RequestContext,
    Route,
    RouteMatch,
    RouteOptions,
    parse_execute,
    parse_methods,
)
from waypoint.routing.scope import ScopeFrame, ScopeStack
from waypoint.routing.table import NotFoundHandler, RouteTable

logger = logging.getLogger("waypoint.routing")

Block: TypeAlias = Callable[["Router"], Any]

# Option keys understood by registration calls and scope blocks
_OPTION_KEYS = frozenset(
    {"prefix", "domain", "port", "ip", "as", "as_", "name", "middleware", "before", "after", "namespace", "path"}
)

_PATTERNS_KEY = "patterns"


class Router:
    """HTTP request router.

    Holds the route table, the pattern table, and the lookup registries
    for controllers and string middleware. Request-scoped state (the route
    being dispatched, its controller, action and arguments) lives in a
    ``DispatchContext`` per dispatch.

    When ``config.cache_path`` is set and a fresh snapshot exists, the
    table is restored from it and further registrations are ignored.
    """

    __slots__ = (
        "_cache",
        "_dispatch",
        "_loaded_from_cache",
        "_scopes",
        "_table",
        "config",
        "container",
        "controllers",
        "middlewares",
        "patterns",
        "request",
        "response",
    )

    def __init__(
        self,
        config: RouterConfig | None = None,
        *,
        request: Request | None = None,
        response: Response | None = None,
        container: Container | None = None,
        patterns: PatternTable | None = None,
    ) -> None:
        self.config: RouterConfig = config or RouterConfig()
        self.request = request
        self.response = response
        self.container = container or Container()
        self.patterns = patterns or PatternTable()
        self.controllers = ControllerRegistry(
            namespace=self.config.controller_namespace,
            path=self.config.controller_path,
        )
        self.middlewares = MiddlewareResolver(
            namespace=self.config.middleware_namespace,
            path=self.config.middleware_path,
        )
        self._scopes = ScopeStack()
        self._table = RouteTable()
        self._dispatch: DispatchContext | None = None
        self._loaded_from_cache = False
        self._cache: RouteCache | None = None

        if self.config.cache_enabled:
            self._cache = RouteCache(self.config.cache_path, self.config.cache_ttl)
            self._load_cache()

    # -- Cache --

    def _load_cache(self) -> None:
        assert self._cache is not None
        snapshot = self._cache.load()
        if snapshot is None:
            return
        self._table = RouteTable.restore(snapshot)
        for key, fragment in snapshot.extra.get(_PATTERNS_KEY, {}).items():
            if key not in self.patterns:
                self.patterns.add(key, fragment)
        self._loaded_from_cache = True

    @property
    def loaded_from_cache(self) -> bool:
        return self._loaded_from_cache

    @property
    def table(self) -> RouteTable:
        return self._table

    def close(self) -> None:
        """Write the route cache if caching is on and the table was built here."""
        if self._cache is None or self._loaded_from_cache:
            return
        snapshot = self._table.snapshot(time.time())
        snapshot.extra[_PATTERNS_KEY] = self.patterns.as_dict()
        self._cache.save(snapshot)

    def __enter__(self) -> "Router":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        # A block that raised may have registered only part of the table.
        if exc_type is None:
            self.close()

    # -- Registration --

    def register(
        self,
        methods: str | Iterable[str],
        path: str,
        execute: Any,
        options: Mapping[str, Any] | None = None,
        *,
        name: str | None = None,
    ) -> "Router":
        """Bind *execute* to *path* for *methods*. Chainable.

        ``options`` may carry the same keys as a scope block (``prefix``,
        ``domain``, ``port``, ``ip``, ``as``, ``middleware``, ``before``,
        ``after``, ``namespace``, ``path``); ``name`` names the route.
        """
        options = dict(options or {})
        if name is None and isinstance(options.get("name"), str):
            name = options.pop("name")
        else:
            options.pop("name", None)

        if self._table.read_only:
            logger.debug("Routes loaded from cache; ignoring registration of %s", path)
            return self

        method_set = parse_methods(methods)
        handler = parse_execute(execute)
        frame = self._scopes.current.nest(**self._scope_kwargs(options))
        handler = self._bind_controller(handler, frame)

        route_options = RouteOptions(
            prefix=frame.prefix,
            domain=frame.domain,
            port=frame.port,
            ip=frame.ip,
            name_prefix=frame.name_prefix,
            middleware=frame.middleware,
            controller_namespace=frame.controller_namespace,
            controller_path=frame.controller_path,
            extra=frame.extra,
        )
        variants = expand_optional(join_paths(frame.prefix, path))
        full_name = f"{frame.name_prefix}{name}" if name else None
        self._table.add(method_set, variants, handler, route_options, full_name)
        return self

    def add(
        self,
        methods: str | Iterable[str],
        path: str,
        execute: Any,
        options: Mapping[str, Any] | None = None,
        *,
        name: str | None = None,
    ) -> "Router":
        """Alias of ``register``; *methods* may be ``"GET|POST"`` or a list."""
        return self.register(methods, path, execute, options, name=name)

    def get(self, path: str, execute: Any, options: Mapping[str, Any] | None = None, *, name: str | None = None) -> "Router":
        return self.register("GET", path, execute, options, name=name)

    def post(self, path: str, execute: Any, options: Mapping[str, Any] | None = None, *, name: str | None = None) -> "Router":
        return self.register("POST", path, execute, options, name=name)

    def put(self, path: str, execute: Any, options: Mapping[str, Any] | None = None, *, name: str | None = None) -> "Router":
        return self.register("PUT", path, execute, options, name=name)

    def patch(self, path: str, execute: Any, options: Mapping[str, Any] | None = None, *, name: str | None = None) -> "Router":
        return self.register("PATCH", path, execute, options, name=name)

    def delete(self, path: str, execute: Any, options: Mapping[str, Any] | None = None, *, name: str | None = None) -> "Router":
        return self.register("DELETE", path, execute, options, name=name)

    def head(self, path: str, execute: Any, options: Mapping[str, Any] | None = None, *, name: str | None = None) -> "Router":
        return self.register("HEAD", path, execute, options, name=name)

    def options(self, path: str, execute: Any, options: Mapping[str, Any] | None = None, *, name: str | None = None) -> "Router":
        return self.register("OPTIONS", path, execute, options, name=name)

    def any(self, path: str, execute: Any, options: Mapping[str, Any] | None = None, *, name: str | None = None) -> "Router":
        """Match every method."""
        return self.register("ANY", path, execute, options, name=name)

    # AJAX variants: matched only for ``X-Requested-With: XMLHttpRequest``

    def xget(self, path: str, execute: Any, options: Mapping[str, Any] | None = None, *, name: str | None = None) -> "Router":
        return self.register("XGET", path, execute, options, name=name)

    def xpost(self, path: str, execute: Any, options: Mapping[str, Any] | None = None, *, name: str | None = None) -> "Router":
        return self.register("XPOST", path, execute, options, name=name)

    def xput(self, path: str, execute: Any, options: Mapping[str, Any] | None = None, *, name: str | None = None) -> "Router":
        return self.register("XPUT", path, execute, options, name=name)

    def xpatch(self, path: str, execute: Any, options: Mapping[str, Any] | None = None, *, name: str | None = None) -> "Router":
        return self.register("XPATCH", path, execute, options, name=name)

    def xdelete(self, path: str, execute: Any, options: Mapping[str, Any] | None = None, *, name: str | None = None) -> "Router":
        return self.register("XDELETE", path, execute, options, name=name)

    def xhead(self, path: str, execute: Any, options: Mapping[str, Any] | None = None, *, name: str | None = None) -> "Router":
        return self.register("XHEAD", path, execute, options, name=name)

    def xoptions(self, path: str, execute: Any, options: Mapping[str, Any] | None = None, *, name: str | None = None) -> "Router":
        return self.register("XOPTIONS", path, execute, options, name=name)

    # -- Modifiers for the last registration --

    def name(self, name: str) -> "Router":
        """Name the routes created by the last registration call.

        The enclosing scope's ``as`` prefix is prepended.
        """
        routes = self._table.last()
        if routes:
            self._table.name_last(f"{routes[0].options.name_prefix}{name}")
        return self

    def middleware(
        self,
        middleware: MiddlewareRef | Iterable[MiddlewareRef],
        position: Position | str = Position.BOTH,
    ) -> "Router":
        """Attach filters to the routes created by the last registration call."""
        refs = _middleware_refs(middleware)
        position = Position(position)
        self._table.amend_last(
            lambda route: replace(
                route,
                options=replace(route.options, middleware=route.options.middleware.add(refs, position)),
            )
        )
        return self

    def pattern(self, key: str, fragment: str) -> "Router":
        """Define a placeholder, usable as ``:key`` and ``{key}``.

        Ignored when the router was loaded from cache; the snapshot
        already carries its patterns.
        """
        if self._table.read_only:
            return self
        self.patterns.add(key, fragment)
        return self

    where = pattern

    def not_found(self, execute: Any, arguments: Iterable[Any] = (), options: Mapping[str, Any] | None = None) -> "Router":
        """Handler for requests no route matches.

        Runs with status 404, without middleware, receiving *arguments*.
        """
        if self._table.read_only:
            return self
        frame = self._scopes.current.nest(**self._scope_kwargs(options or {}))
        handler = self._bind_controller(parse_execute(execute), frame)
        self._table.not_found = NotFoundHandler(
            execute=handler,
            arguments=tuple(arguments),
            options=RouteOptions(
                controller_namespace=frame.controller_namespace,
                controller_path=frame.controller_path,
            ),
        )
        return self

    error_404 = not_found

    def register_controller(self, controller: type, name: str | None = None) -> "Router":
        """Make *controller* resolvable by *name* (its class name by default)."""
        self.controllers.register(controller, name)
        return self

    def register_middleware(self, name: str, middleware: type[Middleware]) -> "Router":
        self.middlewares.register(name, middleware)
        return self

    # -- Scopes --

    def group(self, prefix: str, block: Block, **options: Any) -> None:
        """Register the routes of *block* under *prefix*."""
        self._scoped(block, {**options, "prefix": prefix})

    def domain(self, domain: str, block: Block, **options: Any) -> None:
        """Restrict the routes of *block* to *domain* (may hold placeholders)."""
        self._scoped(block, {**options, "domain": domain})

    def port(self, port: int, block: Block, **options: Any) -> None:
        """Restrict the routes of *block* to requests on *port*."""
        self._scoped(block, {**options, "port": port})

    def ip(self, addresses: str | Iterable[str], block: Block, **options: Any) -> None:
        """Restrict the routes of *block* to clients in *addresses*."""
        self._scoped(block, {**options, "ip": addresses})

    def _scoped(self, block: Block, options: Mapping[str, Any]) -> None:
        with self._scopes.enter(**self._scope_kwargs(options, scope=True)):
            block(self)

    def _scope_kwargs(self, options: Mapping[str, Any], *, scope: bool = False) -> dict[str, Any]:
        """Translate user-facing option keys into ``ScopeFrame.nest`` arguments.

        In a scope block ``name`` is a synonym of ``as``; on a single
        registration it names the route and is handled by the caller.
        """
        name_prefix = options.get("as_") or options.get("as") or (options.get("name") if scope else None) or ""

        middleware = MiddlewareSpec()
        for key, position in (("middleware", Position.BOTH), ("before", Position.BEFORE), ("after", Position.AFTER)):
            if options.get(key):
                middleware = middleware.add(_middleware_refs(options[key]), position)

        port = options.get("port")
        if port is not None:
            port = _validate_port(port)
        ip = options.get("ip")

        return {
            "prefix": options.get("prefix") or "",
            "domain": options.get("domain"),
            "port": port,
            "ip": _validate_addresses(ip) if ip else (),
            "name_prefix": name_prefix,
            "middleware": middleware if middleware else None,
            "controller_namespace": options.get("namespace"),
            "controller_path": options.get("path"),
            "extra": {key: value for key, value in options.items() if key not in _OPTION_KEYS},
        }

    @property
    def scope(self) -> ScopeFrame:
        """The registration context currently in effect."""
        return self._scopes.current

    # -- Controllers --

    def controller(self, controller: type | str, prefix: str = "") -> "Router":
        """Register one route per public action of *controller*.

        ``get_show(self, photo_id: int)`` becomes ``GET <prefix>/show/:int``;
        see ``waypoint.routing.controllers.action_route`` for the rules.
        """
        if self._table.read_only:
            return self
        frame = self._scopes.current
        cls = self.controllers.resolve(
            controller, namespace=frame.controller_namespace, path=frame.controller_path
        )
        for route in automatic_routes(cls, prefix):
            self.register(route.methods, route.path, ControllerAction(cls, route.action), name=route.name)
        return self

    def resource(self, name: str, controller: type | str, options: Mapping[str, Any] | None = None) -> "Router":
        """Register the CRUD routes of resource *name* on *controller*."""
        if self._table.read_only:
            return self
        frame = self._scopes.current
        cls = self.controllers.find(controller, namespace=frame.controller_namespace, path=frame.controller_path)
        target = cls if cls is not None else controller
        for route in resource_routes(name, cls):
            self.register(route.methods, route.path, ControllerAction(target, route.action), options)
        return self

    def _bind_controller(self, handler: HandlerRef, frame: ScopeFrame) -> HandlerRef:
        """Resolve a controller name now when possible; otherwise at dispatch."""
        if isinstance(handler, ControllerAction) and isinstance(handler.controller, str):
            cls = self.controllers.find(
                handler.controller, namespace=frame.controller_namespace, path=frame.controller_path
            )
            if cls is not None:
                return ControllerAction(cls, handler.action)
        return handler

    # -- Lookup --

    def routes(self, method: str | None = None) -> list[Route]:
        """All routes in registration order, or those registered for *method*."""
        if method is None:
            return list(self._table)
        return self._table.for_method(method)

    def route_by_name(self, name: str) -> Route | None:
        routes = self._table.by_name(name)
        return routes[0] if routes else None

    def route(self, name: str, arguments: Mapping[str, Any] | None = None) -> str:
        """Path of the route called *name* with *arguments* substituted.

        An unknown name is returned as given (with substitutions applied),
        so literal paths pass through.
        """
        return reverse.reverse(self._table, self.patterns, name, arguments)

    def url(self, name: str, arguments: Mapping[str, Any] | None = None, request: Request | None = None) -> str:
        """Absolute URL of route *name*.

        Host and scheme come from the route's domain or the current request.
        """
        request = request or self.request
        return reverse.reverse_url(
            self._table,
            self.patterns,
            name,
            arguments,
            scheme=request.scheme if request is not None else "http",
            host=(request.host or "localhost") if request is not None else "localhost",
            port=request.port if request is not None else None,
        )

    # -- Request interpretation --

    def request_method(self, request: Request) -> str:
        """The method routes are matched against.

        A supported ``_method`` field overrides the verb when
        ``variable_method`` is on; otherwise AJAX requests get the ``X``
        prefix.
        """
        if self.config.variable_method:
            field = self.config.method_field
            override = (request.form.get(field) or request.query.get(field) or "").strip().upper()
            if override in SUPPORTED_METHODS:
                return override
        method = request.method.upper()
        if request.is_ajax and method in HTTP_METHODS:
            return f"X{method}"
        return method

    def request_path(self, request: Request) -> str:
        """Request path relative to ``config.base_path``."""
        path = normalize_path(request.path)
        base = normalize_path(self.config.base_path)
        if base == "/":
            return path
        if path == base:
            return "/"
        if path.startswith(f"{base}/"):
            return path[len(base) :]
        return path

    def request_port(self, request: Request) -> int:
        if request.port is not None:
            return request.port
        return self.config.secure_port if request.is_secure else self.config.default_port

    def request_context(self, request: Request) -> RequestContext:
        return RequestContext(
            domain=request.host or None,
            port=self.request_port(request),
            ip=request.client,
        )

    # -- Resolution & dispatch --

    def resolve(self, method: str, path: str, context: RequestContext | None = None) -> RouteMatch | None:
        """Best route for *method* and *path*, or ``None``."""
        return resolver.resolve(self._table, self.patterns, method, path, context)

    def match(self, request: Request) -> RouteMatch | None:
        """Resolve *request* the way ``dispatch`` would."""
        return self.resolve(
            self.request_method(request),
            self.request_path(request),
            self.request_context(request),
        )

    def dispatch(self, request: Request | None = None, response: Response | None = None) -> Response:
        """Resolve *request*, run middleware and handler, return the response.

        Raises ``RouteNotFound`` when nothing matches and no not-found
        handler is configured.
        """
        request = request or self.request
        if request is None:
            msg = "dispatch() needs a request: pass one or give it to Router(request=...)."
            raise ConfigurationError(msg)
        response = response or self.response or Response()

        method = self.request_method(request)
        path = self.request_path(request)
        match = self.resolve(method, path, self.request_context(request))
        if match is None:
            return self._dispatch_not_found(request, response, method, path)
        return self._dispatch_route(match, request, response)

    def _dispatch_route(self, match: RouteMatch, request: Request, response: Response) -> Response:
        route = match.route
        controller, action = self._handler_class(route.execute, route.options)
        context = DispatchContext(route=route, controller=controller, action=action, arguments=match.arguments)
        self._dispatch = context
        token = dispatch_var.set(context)
        try:
            before, after = collect(route.options.middleware, controller, action)
            pipeline = Pipeline(before, after, resolver=self.middlewares, container=self.container)
            return pipeline.run(
                request,
                response,
                match.arguments,
                lambda current: self._invoke(route.execute, controller, match.arguments, request, current),
            )
        finally:
            dispatch_var.reset(token)

    def _dispatch_not_found(self, request: Request, response: Response, method: str, path: str) -> Response:
        handler = self._table.not_found
        if handler is None:
            raise RouteNotFound(method, path)
        controller, _ = self._handler_class(handler.execute, handler.options)
        return self._invoke(handler.execute, controller, handler.arguments, request, response.with_status(404))

    def _handler_class(self, execute: HandlerRef, options: RouteOptions) -> tuple[type | None, str | None]:
        """Resolve the controller class and check the action exists."""
        if isinstance(execute, CallableHandler):
            return None, None
        cls = self.controllers.resolve(
            execute.controller,
            namespace=options.controller_namespace,
            path=options.controller_path,
        )
        action_method(cls, execute.action)
        return cls, execute.action

    def _invoke(
        self,
        execute: HandlerRef,
        controller: type | None,
        arguments: tuple[Any, ...],
        request: Request,
        response: Response,
    ) -> Response:
        if isinstance(execute, CallableHandler):
            target = execute.func
        else:
            instance = self.container.resolve(controller, request, response)
            target = getattr(instance, execute.action)
        return invoke(target, arguments, request, response, self.container)

    # -- Current dispatch --

    @property
    def current(self) -> DispatchContext | None:
        """Context of the most recent dispatch on this router."""
        return self._dispatch

    @property
    def current_controller(self) -> type | None:
        return self._dispatch.controller if self._dispatch else None

    @property
    def current_action(self) -> str | None:
        return self._dispatch.action if self._dispatch else None

    @property
    def current_arguments(self) -> tuple[Any, ...]:
        return self._dispatch.arguments if self._dispatch else ()


# -- Validation helpers --


def _middleware_refs(middleware: Any) -> tuple[MiddlewareRef, ...]:
    refs = tuple(middleware) if isinstance(middleware, (list, tuple)) else (middleware,)
    for ref in refs:
        if isinstance(ref, (str, Middleware)) or callable(ref):
            continue
        msg = f"Middleware must be a callable, a Middleware class, or a class name; got {ref!r}."
        raise InvalidRegistration(msg)
    return refs


def _validate_port(port: Any) -> int:
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        msg = f"Port must be an integer between 1 and 65535, got {port!r}."
        raise InvalidRegistration(msg)
    return port


def _validate_addresses(addresses: str | Iterable[str]) -> tuple[str, ...]:
    if isinstance(addresses, str):
        addresses = [addresses]
    validated: list[str] = []
    for address in addresses:
        try:
            validated.append(str(ipaddress.ip_address(str(address).strip())))
        except ValueError:
            msg = f"Invalid IP address {address!r}."
            raise InvalidRegistration(msg) from None
    return tuple(validated)
