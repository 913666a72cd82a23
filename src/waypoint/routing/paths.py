"""Path normalisation and optional-segment expansion."""

import re

_SLASHES = re.compile(r"/{2,}")


def normalize_path(path: str) -> str:
    """Return *path* as ``/a/b``: one leading slash, no trailing slash.

    Backslashes count as separators and repeated slashes collapse. The
    empty path and ``/`` both normalise to ``/``.
    """
    path = path.strip().replace("\\", "/")
    path = _SLASHES.sub("/", path).strip("/")
    return f"/{path}" if path else "/"


def join_paths(*parts: str) -> str:
    """Join path fragments and normalise the result."""
    return normalize_path("/".join(part for part in parts if part))


def expand_optional(path: str) -> list[str]:
    """Expand ``?``-suffixed segments into path variants, longest first.

    ::

        expand_optional("/admin/{slug}?")     # ["/admin/{slug}", "/admin"]
        expand_optional("/a/:int?/:int1?")    # ["/a/:int/:int1", "/a/:int", "/a"]

    Each optional segment contributes the variant truncated just before it.
    """
    path = normalize_path(path)
    if "?" not in path:
        return [path]

    variants: list[str] = []
    kept: list[str] = []
    for segment in path.strip("/").split("/"):
        if segment.endswith("?"):
            variants.append(normalize_path("/".join(kept)))
            segment = segment.rstrip("?")
        kept.append(segment)
    variants.append(normalize_path("/".join(kept)))

    ordered: list[str] = []
    for variant in reversed(variants):
        if variant not in ordered:
            ordered.append(variant)
    return ordered
