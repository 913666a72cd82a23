"""Request headers, looked up by lower-cased name."""

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType


class Headers(Mapping[str, str]):
    """Read-only header mapping with case-insensitive names.

    Built from a mapping or ``(name, value)`` pairs. When a name repeats,
    the first value is kept; the router only reads single-valued headers
    (``X-Requested-With``, ``Content-Type``).
    """

    __slots__ = ("_values",)

    def __init__(self, headers: Mapping[str, str] | Iterable[tuple[str, str]] = ()) -> None:
        pairs = headers.items() if isinstance(headers, Mapping) else headers
        values: dict[str, str] = {}
        for name, value in pairs:
            values.setdefault(str(name).lower(), str(value))
        self._values = MappingProxyType(values)

    def __getitem__(self, name: str) -> str:
        return self._values[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)
