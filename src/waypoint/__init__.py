"""Waypoint — an HTTP request router.

Registers path templates against handlers, picks the most specific match
for each request, runs before/after middleware around the handler, and
renders its result into a response.

Basic usage::

    from waypoint import Request, Router

    router = Router()

    def show_user(user_id: int) -> str:
        return f"user {user_id}"

    router.get("/users/:int", show_user).name("users.show")

    response = router.dispatch(Request.from_url("GET", "/users/42"))
    response.text  # "user 42"

Scoped registration::

    def admin(r: Router) -> None:
        r.get("/dashboard", dashboard).name("dashboard")

    router.group("/admin", admin, as_="admin.", middleware=[RequireLogin])
    router.route("admin.dashboard")  # "/admin/dashboard"
"""

__version__ = "0.1.0"
__all__ = [
    "ConfigurationError",
    "Container",
    "Controller",
    "DispatchContext",
    "HTTPError",
    "Middleware",
    "NotFound",
    "Position",
    "Request",
    "Response",
    "RouteNotFound",
    "Router",
    "RouterConfig",
    "WaypointError",
    "current_dispatch",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import waypoint`` fast while providing a clean top-level API.
    """
    if name == "Router":
        from waypoint.routing.router import Router

        return Router

    if name == "RouterConfig":
        from waypoint.config import RouterConfig

        return RouterConfig

    if name in ("Request", "Response"):
        from waypoint import http as _http

        return getattr(_http, name)

    if name in ("Middleware", "Position"):
        from waypoint.middleware import protocol as _mw

        return getattr(_mw, name)

    if name == "Controller":
        from waypoint.routing.controllers import Controller

        return Controller

    if name == "Container":
        from waypoint.injection import Container

        return Container

    if name in ("DispatchContext", "current_dispatch"):
        from waypoint import context as _ctx

        return getattr(_ctx, name)

    if name in ("WaypointError", "ConfigurationError", "HTTPError", "NotFound", "RouteNotFound"):
        from waypoint import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
