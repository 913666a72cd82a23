"""Tests for waypoint.cli._resolve — finding the Router for a command."""

import sys
import types

import pytest

from waypoint.cli._resolve import resolve_router
from waypoint.routing.router import Router


def _install(monkeypatch: pytest.MonkeyPatch, name: str, **attributes: object) -> types.ModuleType:
    module = types.ModuleType(name)
    for key, value in attributes.items():
        setattr(module, key, value)
    monkeypatch.setitem(sys.modules, name, module)
    return module


class TestResolveRouter:
    def test_explicit_attribute(self, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = Router()
        _install(monkeypatch, "_routes_explicit", router=Router(), custom=custom)
        assert resolve_router("_routes_explicit:custom") is custom

    def test_default_attribute(self, monkeypatch: pytest.MonkeyPatch) -> None:
        module = _install(monkeypatch, "_routes_default", router=Router(), other=Router())
        assert resolve_router("_routes_default") is module.router  # type: ignore[attr-defined]

    def test_single_router_found_without_default_name(self, monkeypatch: pytest.MonkeyPatch) -> None:
        api = Router()
        _install(monkeypatch, "_routes_single", api=api, version="1.0")
        assert resolve_router("_routes_single") is api

    def test_ambiguous_module(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, "_routes_ambiguous", api=Router(), admin=Router())
        with pytest.raises(AttributeError, match="2 Router instances"):
            resolve_router("_routes_ambiguous")

    def test_factory_called(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def make_router() -> Router:
            return Router().get("/", lambda: "home")

        _install(monkeypatch, "_routes_factory", make_router=make_router)
        router = resolve_router("_routes_factory:make_router")
        assert [route.path for route in router.routes()] == ["/"]

    def test_missing_module(self) -> None:
        with pytest.raises(ModuleNotFoundError):
            resolve_router("nonexistent_module_xyz:router")

    def test_missing_attribute(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, "_routes_missing", router=Router())
        with pytest.raises(AttributeError):
            resolve_router("_routes_missing:does_not_exist")

    def test_wrong_type(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, "_routes_wrong", router="just a string")
        with pytest.raises(TypeError, match=r"not a waypoint\.Router instance"):
            resolve_router("_routes_wrong")
