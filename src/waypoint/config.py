"""Router configuration.

RouterConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Router configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = RouterConfig(base_path="/app", variable_method=True)
    """

    # Request interpretation
    base_path: str = "/"
    variable_method: bool = False  # Honour a ``_method`` form/query override
    method_field: str = "_method"
    default_port: int = 80
    secure_port: int = 443

    # Controller lookup
    controller_namespace: str | None = None  # Module searched for controller names
    controller_path: str | Path | None = None  # Directory holding <Name>.py files

    # Middleware lookup (string middleware references)
    middleware_namespace: str | None = None
    middleware_path: str | Path | None = None

    # Route-table snapshot cache
    cache_path: str | Path | None = None
    cache_ttl: float = 86400.0  # seconds

    @property
    def cache_enabled(self) -> bool:
        return self.cache_path is not None
