"""Placeholder patterns and the template compiler.

Path and domain templates use two interchangeable token syntaxes::

    /user/:int          -> ^/user/(?P<_0>\\d+)$
    /user/{slug}/{id}   -> ^/user/(?P<_0>[\\w-]+)/(?P<_1>\\d+)$
    {account}.example.com

A trailing number on a token (``:int1``, ``{string2}``) reuses the base
entry's fragment; numbering only lets one template mention a type twice.
Unknown ``{word}`` tokens capture ``[\\w-]+``; unknown ``:word`` text is
matched literally.
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass

from waypoint.errors import DuplicatePatternKey, InvalidRegistration

# (key, regex fragment) for each built-in placeholder
BUILTIN_PATTERNS: dict[str, str] = {
    "any": r"[^/]+",
    "id": r"\d+",
    "int": r"\d+",
    "number": r"[+-]?(?:[0-9]*[.])?[0-9]+",
    "float": r"[+-]?(?:[0-9]*[.])?[0-9]+",
    "bool": r"true|false|1|0",
    "string": r"[\w-]+",
    "slug": r"[\w-]+",
    "uuid": r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    "date": r"[0-9]{4}-(?:0[1-9]|1[0-2])-(?:0[1-9]|[1-2][0-9]|3[0-1])",
    "locale": r"[A-Za-z]{2}(?:[_-][A-Za-z]{2})?",
}

GENERIC_FRAGMENT = r"[\w-]+"

TOKEN_RE = re.compile(r"\{(?P<brace>[A-Za-z_][\w-]*)\}|:(?P<colon>[A-Za-z_]\w*)")


@dataclass(frozen=True, slots=True)
class Token:
    """A placeholder occurrence inside a template.

    ``raw`` is the text as written (``{id}`` or ``:id``), ``name`` the bare
    key (``id``).
    """

    raw: str
    name: str
    braced: bool


def normalize_key(key: str) -> str:
    """Strip token syntax from a pattern key: ``{uuid}``/``:uuid`` -> ``uuid``."""
    key = key.strip()
    if key.startswith("{") and key.endswith("}"):
        key = key[1:-1]
    return key.lstrip(":")


def split_template(template: str) -> list[str | Token]:
    """Split *template* into literal text and ``Token`` parts, in order.

    Tokens are returned for every syntactically valid placeholder; whether
    a ``:word`` token is recognised is up to the ``PatternTable``.
    """
    parts: list[str | Token] = []
    pos = 0
    for match in TOKEN_RE.finditer(template):
        if match.start() > pos:
            parts.append(template[pos : match.start()])
        braced = match.group("brace") is not None
        name = match.group("brace") if braced else match.group("colon")
        parts.append(Token(raw=match.group(0), name=name, braced=braced))
        pos = match.end()
    if pos < len(template):
        parts.append(template[pos:])
    return parts


class PatternTable:
    """Ordered mapping from placeholder key to regex fragment.

    Usage::

        patterns = PatternTable()
        patterns.add("year", r"\\d{4}")
        regex = patterns.compile("/archive/:year/{slug}")
        regex.match("/archive/2024/hello").groups()  # ('2024', 'hello')
    """

    __slots__ = ("_cache", "_patterns")

    def __init__(self, patterns: dict[str, str] | None = None) -> None:
        self._patterns: dict[str, str] = dict(BUILTIN_PATTERNS if patterns is None else patterns)
        self._cache: dict[tuple[str, int], re.Pattern[str]] = {}

    def add(self, key: str, fragment: str) -> None:
        """Register a new placeholder. Existing keys cannot be redefined.

        Fragments may not name their own groups: a template repeating the
        token would define the name twice.
        """
        key = normalize_key(key)
        if not key:
            msg = "Pattern key must not be empty."
            raise InvalidRegistration(msg)
        if key in self._patterns:
            raise DuplicatePatternKey(key)
        if "(?P<" in fragment:
            msg = f"Pattern {key!r} must not contain named groups: {fragment!r}"
            raise InvalidRegistration(msg)
        try:
            re.compile(fragment)
        except re.error as exc:
            msg = f"Pattern {key!r} is not a valid regular expression: {exc}"
            raise InvalidRegistration(msg) from exc
        self._patterns[key] = fragment
        self._cache.clear()

    def fragment(self, name: str, *, braced: bool = True) -> str | None:
        """Return the fragment for token *name*, or ``None`` if it is literal text."""
        if name in self._patterns:
            return self._patterns[name]
        base = name.rstrip("0123456789")
        if base and base != name and base in self._patterns:
            return self._patterns[base]
        if braced:
            return GENERIC_FRAGMENT
        return None

    def tokens(self, template: str) -> list[Token]:
        """Return the recognised placeholders of *template* in order."""
        return [
            part
            for part in split_template(template)
            if isinstance(part, Token) and self.fragment(part.name, braced=part.braced) is not None
        ]

    def static_length(self, template: str) -> int:
        """Number of literal characters in *template*."""
        length = 0
        for part in split_template(template):
            if isinstance(part, str):
                length += len(part)
            elif self.fragment(part.name, braced=part.braced) is None:
                length += len(part.raw)
        return length

    def compile(self, template: str, flags: int = 0) -> re.Pattern[str]:
        """Translate *template* into an anchored regex with one group per token.

        Groups are named ``_0``, ``_1``, ... so fragments carrying their own
        groups never shift argument positions.
        """
        key = (template, flags)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        out: list[str] = ["^"]
        index = 0
        for part in split_template(template):
            if isinstance(part, str):
                out.append(re.escape(part))
                continue
            fragment = self.fragment(part.name, braced=part.braced)
            if fragment is None:
                out.append(re.escape(part.raw))
                continue
            out.append(f"(?P<_{index}>{fragment})")
            index += 1
        out.append("$")

        compiled = re.compile("".join(out), flags)
        self._cache[key] = compiled
        return compiled

    def match(self, template: str, value: str, flags: int = 0) -> tuple[str, ...] | None:
        """Match *value* against *template*; return the captures in order."""
        m = self.compile(template, flags).match(value)
        if m is None:
            return None
        count = sum(1 for name in m.re.groupindex if name[:1] == "_" and name[1:].isdigit())
        return tuple(m.group(f"_{i}") for i in range(count))

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and normalize_key(key) in self._patterns

    def __iter__(self) -> Iterator[str]:
        return iter(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def as_dict(self) -> dict[str, str]:
        return dict(self._patterns)
