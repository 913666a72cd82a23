"""Immutable HTTP request.

The router only reads from the request: method, URI parts, a handful of
headers, and the ``_method`` override field. Anything that can serve those
attributes works; this class is the default implementation.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from urllib.parse import parse_qsl, urlsplit

from waypoint.http.headers import Headers

_EMPTY: Mapping[str, str] = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``port`` is ``None`` when the URI did not carry one; the router then
    falls back to the scheme default.
    """

    method: str
    path: str = "/"
    host: str = ""
    port: int | None = None
    scheme: str = "http"
    client: str | None = None
    headers: Headers = field(default_factory=Headers)
    query: Mapping[str, str] = field(default_factory=lambda: _EMPTY)
    form: Mapping[str, str] = field(default_factory=lambda: _EMPTY)
    body: bytes = b""

    @classmethod
    def from_url(
        cls,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | Iterable[tuple[str, str]] = (),
        client: str | None = None,
        form: Mapping[str, str] | None = None,
        body: bytes = b"",
    ) -> Request:
        """Build a request from an absolute or path-only URL.

        ::

            Request.from_url("GET", "https://api.example.com:8443/users?page=2")
        """
        parts = urlsplit(url)
        return cls(
            method=method.upper(),
            path=parts.path or "/",
            host=(parts.hostname or "").lower(),
            port=parts.port,
            scheme=(parts.scheme or "http").lower(),
            client=client,
            headers=Headers(headers),
            query=MappingProxyType(dict(parse_qsl(parts.query))),
            form=MappingProxyType(dict(form or {})),
            body=body,
        )

    # -- Computed properties --

    @property
    def is_ajax(self) -> bool:
        """True for ``X-Requested-With: XMLHttpRequest`` requests."""
        return (self.headers.get("x-requested-with") or "").lower() == "xmlhttprequest"

    @property
    def is_secure(self) -> bool:
        return self.scheme == "https"

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")
