"""Tests for waypoint.config — RouterConfig frozen dataclass."""

from pathlib import Path

import pytest

from waypoint.config import RouterConfig


class TestRouterConfig:
    def test_defaults(self) -> None:
        cfg = RouterConfig()

        assert cfg.base_path == "/"
        assert cfg.variable_method is False
        assert cfg.method_field == "_method"
        assert cfg.default_port == 80
        assert cfg.secure_port == 443
        assert cfg.controller_namespace is None
        assert cfg.cache_path is None
        assert cfg.cache_ttl == 86400.0

    def test_override(self) -> None:
        cfg = RouterConfig(base_path="/app", variable_method=True)

        assert cfg.base_path == "/app"
        assert cfg.variable_method is True

    def test_frozen(self) -> None:
        cfg = RouterConfig()

        with pytest.raises(AttributeError):
            cfg.base_path = "/other"  # type: ignore[misc]

    def test_cache_enabled(self) -> None:
        assert RouterConfig().cache_enabled is False
        assert RouterConfig(cache_path=Path("routes.cache")).cache_enabled is True
