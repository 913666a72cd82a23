"""Find the Router a CLI command operates on.

``waypoint routes myapp.routes:router`` names the attribute explicitly;
``waypoint routes myapp.routes`` uses ``router`` or, failing that, the
module's only Router instance.
"""

import importlib
import inspect
from types import ModuleType

from waypoint.routing.router import Router

DEFAULT_ATTRIBUTE = "router"


def resolve_router(target: str) -> Router:
    """Load the Router named by *target* (``"module"`` or ``"module:attribute"``).

    A plain function found there is called to build the router.
    """
    module_name, _, attribute = target.partition(":")
    module = importlib.import_module(module_name)
    found = getattr(module, attribute) if attribute else _module_router(module)
    if inspect.isfunction(found):
        found = found()
    if not isinstance(found, Router):
        msg = f"{target!r} is a {type(found).__name__}, not a waypoint.Router instance"
        raise TypeError(msg)
    return found


def _module_router(module: ModuleType) -> object:
    if hasattr(module, DEFAULT_ATTRIBUTE):
        return getattr(module, DEFAULT_ATTRIBUTE)
    routers = [value for value in vars(module).values() if isinstance(value, Router)]
    if len(routers) == 1:
        return routers[0]
    msg = (
        f"Module {module.__name__!r} has no {DEFAULT_ATTRIBUTE!r} attribute and "
        f"{len(routers)} Router instances; name one as 'module:attribute'."
    )
    raise AttributeError(msg)
