"""Route-table snapshot cache.

Saves the registered table to disk so later processes can skip
registration. A snapshot younger than ``ttl`` seconds is loaded and the
table becomes read-only; anything else (missing, stale, unreadable or
corrupt file) is a cache miss.

Handlers are pickled by reference, so only module-level functions and
classes survive a round trip. A table holding lambdas or closures is not
written; a warning is logged instead.
"""

import logging
import os
import pickle
import tempfile
import time
from pathlib import Path

from waypoint.routing.table import TableSnapshot

logger = logging.getLogger("waypoint.cache")


class RouteCache:
    """Pickle-backed store for one ``TableSnapshot``.

    Usage::

        cache = RouteCache("var/routes.cache", ttl=3600)
        snapshot = cache.load()
        if snapshot is None:
            ...  # register routes
            cache.save(table.snapshot(time.time()))
    """

    __slots__ = ("path", "ttl")

    def __init__(self, path: str | Path, ttl: float = 86400.0) -> None:
        self.path = Path(path)
        self.ttl = ttl

    def load(self, now: float | None = None) -> TableSnapshot | None:
        """Return the cached snapshot, or ``None`` on a miss."""
        now = time.time() if now is None else now
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Route cache %s is unreadable: %s", self.path, exc)
            return None

        try:
            snapshot = pickle.loads(data)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Route cache %s is corrupt, ignoring it: %s", self.path, exc)
            return None

        if not isinstance(snapshot, TableSnapshot):
            logger.warning("Route cache %s holds %s, not a route table", self.path, type(snapshot).__name__)
            return None
        if now - snapshot.created_at >= self.ttl:
            logger.debug("Route cache %s expired", self.path)
            return None

        logger.debug("Loaded %d routes from %s", len(snapshot.routes), self.path)
        return snapshot

    def save(self, snapshot: TableSnapshot) -> bool:
        """Write *snapshot*; returns ``False`` when it cannot be pickled."""
        try:
            data = pickle.dumps(snapshot, protocol=pickle.HIGHEST_PROTOCOL)
        except (pickle.PicklingError, TypeError, AttributeError) as exc:
            logger.warning("Route table cannot be cached (%s); handlers must be importable", exc)
            return False

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        logger.debug("Saved %d routes to %s", len(snapshot.routes), self.path)
        return True

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
