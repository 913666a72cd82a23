"""The route table.

Append-only during registration, indexed per HTTP method, with a names
index for reverse routing. A table restored from a snapshot is read-only:
further registrations are ignored.
"""

import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field, replace
from typing import Any

from waypoint.errors import DanglingModifier, DuplicateName
from waypoint.routing.route import (
    SUPPORTED_METHODS,
    HandlerRef,
    Route,
    RouteOptions,
)

logger = logging.getLogger("waypoint.routing")


@dataclass(frozen=True, slots=True)
class NotFoundHandler:
    """Handler run when nothing matches. Never wrapped in middleware."""

    execute: HandlerRef
    arguments: tuple[Any, ...] = ()
    options: RouteOptions = RouteOptions()


@dataclass(frozen=True, slots=True)
class TableSnapshot:
    """A serialisable copy of the table's data model."""

    created_at: float
    routes: tuple[Route, ...]
    names: dict[str, tuple[int, ...]]
    method_index: dict[str, tuple[int, ...]]
    not_found: NotFoundHandler | None = None
    next_id: int = 1
    extra: dict[str, Any] = field(default_factory=dict)


class RouteTable:
    """Routes by id, per-method registration order, and route names.

    Usage::

        table = RouteTable()
        (route,) = table.add(frozenset({"GET"}), ["/users"], handler_ref, RouteOptions())
        table.name_last("users.index")
        table.for_method("GET")  # [route]
    """

    __slots__ = ("_by_method", "_last", "_names", "_next_id", "_read_only", "_routes", "not_found")

    def __init__(self) -> None:
        self._routes: dict[int, Route] = {}
        self._by_method: dict[str, list[int]] = {method: [] for method in SUPPORTED_METHODS}
        self._names: dict[str, tuple[int, ...]] = {}
        self._next_id = 1
        self._last: tuple[int, ...] = ()
        self._read_only = False
        self.not_found: NotFoundHandler | None = None

    # -- Registration --

    @property
    def read_only(self) -> bool:
        return self._read_only

    def freeze(self) -> None:
        """Make the table read-only; later ``add`` calls become no-ops."""
        self._read_only = True

    def add(
        self,
        methods: frozenset[str],
        paths: Iterable[str],
        execute: HandlerRef,
        options: RouteOptions,
        name: str | None = None,
    ) -> tuple[Route, ...]:
        """Store one route per path variant, in the order given.

        Returns the new routes, or ``()`` when the table is read-only.
        Raises ``DuplicateName`` before storing anything if *name* is taken.
        """
        paths = list(paths)
        if self._read_only:
            logger.debug("Route table is read-only; ignoring %s %s", "|".join(sorted(methods)), paths)
            return ()
        if name is not None and name in self._names:
            raise DuplicateName(name)

        created: list[Route] = []
        for path in paths:
            route = Route(
                id=self._next_id,
                methods=methods,
                path=path,
                execute=execute,
                options=options,
                name=name,
            )
            self._next_id += 1
            self._routes[route.id] = route
            for method in sorted(methods):
                self._by_method[method].append(route.id)
            created.append(route)
            logger.debug(
                "Registered route #%d %s %s -> %s",
                route.id,
                "|".join(sorted(methods)),
                path,
                execute.label,
            )

        self._last = tuple(route.id for route in created)
        if name is not None:
            self._names[name] = self._last
        return tuple(created)

    def last(self) -> tuple[Route, ...]:
        """Routes created by the most recent registration call.

        Always empty on a read-only table, where registrations are ignored.
        """
        if self._read_only:
            return ()
        if not self._last:
            msg = "No route has been registered yet; name() and middleware() need a preceding route."
            raise DanglingModifier(msg)
        return tuple(self._routes[route_id] for route_id in self._last)

    def amend_last(self, change: Callable[[Route], Route]) -> tuple[Route, ...]:
        """Replace every route of the last registration with ``change(route)``."""
        amended = tuple(change(route) for route in self.last())
        for route in amended:
            self._routes[route.id] = route
        return amended

    def name_last(self, name: str) -> tuple[Route, ...]:
        """Name the last registration. Names are unique across the table."""
        routes = self.last()
        if not routes:
            return routes
        owner = self._names.get(name)
        if owner is not None and owner != self._last:
            raise DuplicateName(name)
        previous = routes[0].name
        if previous is not None and previous != name:
            self._names.pop(previous, None)
        self._names[name] = self._last
        return self.amend_last(lambda route: replace(route, name=name))

    # -- Lookup --

    def get(self, route_id: int) -> Route:
        return self._routes[route_id]

    def for_method(self, method: str) -> list[Route]:
        """Routes registered for *method*, in registration order."""
        return [self._routes[route_id] for route_id in self._by_method.get(method.upper(), ())]

    def by_name(self, name: str) -> tuple[Route, ...]:
        """Routes registered under *name*, longest variant first; ``()`` if unknown."""
        return tuple(self._routes[route_id] for route_id in self._names.get(name, ()))

    @property
    def names(self) -> dict[str, tuple[int, ...]]:
        return dict(self._names)

    def __iter__(self) -> Iterator[Route]:
        return iter(sorted(self._routes.values(), key=lambda route: route.id))

    def __len__(self) -> int:
        return len(self._routes)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    # -- Snapshots --

    def snapshot(self, created_at: float) -> TableSnapshot:
        return TableSnapshot(
            created_at=created_at,
            routes=tuple(self),
            names=dict(self._names),
            method_index={method: tuple(ids) for method, ids in self._by_method.items() if ids},
            not_found=self.not_found,
            next_id=self._next_id,
        )

    @classmethod
    def restore(cls, snapshot: TableSnapshot) -> "RouteTable":
        """Rebuild a read-only table from *snapshot*."""
        table = cls()
        table._routes = {route.id: route for route in snapshot.routes}
        for method, ids in snapshot.method_index.items():
            table._by_method[method] = list(ids)
        table._names = dict(snapshot.names)
        table._next_id = snapshot.next_id
        table.not_found = snapshot.not_found
        table.freeze()
        return table
