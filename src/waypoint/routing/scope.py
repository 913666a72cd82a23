"""Nested registration scopes.

``group``, ``domain``, ``port`` and ``ip`` blocks push a frame that
combines their constraint with the enclosing one. Frames live on a stack
so arbitrarily deep nesting unwinds exactly, even when a block raises.
"""

from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from waypoint.routing.paths import join_paths
from waypoint.routing.route import MiddlewareSpec


@dataclass(frozen=True, slots=True)
class ScopeFrame:
    """The registration context contributed by the enclosing blocks.

    Combination rules when nesting:

    - ``prefix``, ``name_prefix``, ``middleware``: concatenated, outer first
    - ``ip``: union
    - ``domain``, ``port``, controller lookup: the inner value wins
      (a route cannot live on two ports)
    - ``extra``: merged, inner keys added
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

    def nest(
        self,
        *,
        prefix: str = "",
        domain: str | None = None,
        port: int | None = None,
        ip: Iterable[str] = (),
        name_prefix: str = "",
        middleware: MiddlewareSpec | None = None,
        controller_namespace: str | None = None,
        controller_path: str | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> "ScopeFrame":
        """Return the frame for a block opened inside this one."""
        return ScopeFrame(
            prefix=join_paths(self.prefix, prefix) if (self.prefix or prefix) else "",
            domain=domain if domain is not None else self.domain,
            port=port if port is not None else self.port,
            ip=self.ip.union(ip),
            name_prefix=self.name_prefix + name_prefix,
            middleware=self.middleware.merge(middleware) if middleware else self.middleware,
            controller_namespace=controller_namespace or self.controller_namespace,
            controller_path=controller_path or self.controller_path,
            extra={**self.extra, **(extra or {})},
        )


class ScopeStack:
    """LIFO stack of ``ScopeFrame`` with an always-present root frame."""

    __slots__ = ("_frames",)

    def __init__(self) -> None:
        self._frames: list[ScopeFrame] = [ScopeFrame()]

    @property
    def current(self) -> ScopeFrame:
        return self._frames[-1]

    @property
    def depth(self) -> int:
        """Number of open blocks (0 at top level)."""
        return len(self._frames) - 1

    @contextmanager
    def enter(self, **constraints: Any) -> Iterator[ScopeFrame]:
        """Push a nested frame for the duration of the ``with`` block."""
        frame = self.current.nest(**constraints)
        self._frames.append(frame)
        depth = len(self._frames)
        try:
            yield frame
        finally:
            # Drop anything a misbehaving block left open, then our own frame.
            del self._frames[depth - 1 :]
