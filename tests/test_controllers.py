"""Tests for waypoint.routing.controllers — lookup, automatic and resource routes."""

import sys
import types
from pathlib import Path

import pytest

from waypoint.errors import ControllerNotFound, MethodNotFound
from waypoint.http.request import Request
from waypoint.routing.controllers import (
    ActionRoute,
    Controller,
    ControllerRegistry,
    action_method,
    action_placeholders,
    automatic_routes,
    public_actions,
    resource_routes,
    split_action,
)


class Mailer:
    pass


class ExampleController(Controller):
    names = {"index": "example.index"}

    def index(self) -> str:
        return "index"

    def get_create(self) -> str:
        return "create"

    def getShow(self, slug: str) -> str:  # noqa: N802
        return slug

    def get_edit(self, request: Request, item_id: int, mailer: Mailer) -> str:
        return str(item_id)

    def post_index(self) -> str:
        return "stored"

    def put_update(self, item_id: int) -> str:
        return "updated"

    def patch_update(self, item_id: int) -> str:
        return "patched"

    def delete_delete(self, item_id: int) -> str:
        return "deleted"

    def _helper(self) -> None: ...

    @staticmethod
    def utility() -> None: ...


class TestSplitAction:
    @pytest.mark.parametrize(
        ("name", "words"),
        [
            ("get_user_profile", ["get", "user", "profile"]),
            ("getUserProfile", ["get", "user", "profile"]),
            ("index", ["index"]),
            ("xpost_upload", ["xpost", "upload"]),
        ],
    )
    def test_split(self, name: str, words: list[str]) -> None:
        assert split_action(name) == words


class TestPublicActions:
    def test_definition_order_without_private_or_static(self) -> None:
        assert list(public_actions(ExampleController)) == [
            "index",
            "get_create",
            "getShow",
            "get_edit",
            "post_index",
            "put_update",
            "patch_update",
            "delete_delete",
        ]

    def test_inherited_actions_first(self) -> None:
        class Child(ExampleController):
            def get_extra(self) -> str:
                return "extra"

        actions = list(public_actions(Child))
        assert actions[0] == "index"
        assert actions[-1] == "get_extra"


class TestPlaceholders:
    def test_numbered_from_second_of_a_type(self) -> None:
        def action(self, a: int, b: int, c: str, d: float, e: bool, f, g: int) -> None: ...  # type: ignore[no-untyped-def]

        assert action_placeholders(action) == [":int", ":int1", ":string", ":float", ":bool", ":any", ":int2"]

    def test_request_and_dependencies_skipped(self) -> None:
        assert action_placeholders(ExampleController.get_edit) == [":int"]


class TestAutomaticRoutes:
    def test_documented_table(self) -> None:
        routes = automatic_routes(ExampleController, "/api")
        assert routes == [
            ActionRoute("GET", "/api", "index", "example.index"),
            ActionRoute("GET", "/api/create", "get_create"),
            ActionRoute("GET", "/api/show/:string", "getShow"),
            ActionRoute("GET", "/api/edit/:int", "get_edit"),
            ActionRoute("POST", "/api", "post_index"),
            ActionRoute("PUT", "/api/update/:int", "put_update"),
            ActionRoute("PATCH", "/api/update/:int", "patch_update"),
            ActionRoute("DELETE", "/api/delete/:int", "delete_delete"),
        ]

    def test_no_prefix(self) -> None:
        routes = automatic_routes(ExampleController)
        assert routes[0].path == "/"
        assert routes[1].path == "/create"

    def test_bare_verb_sets_method_and_stays_in_path(self) -> None:
        class ItemController:
            def post(self) -> str:
                return "created"

            def delete(self, item_id: int) -> str:
                return "deleted"

        assert automatic_routes(ItemController, "/items") == [
            ActionRoute("POST", "/items/post", "post"),
            ActionRoute("DELETE", "/items/delete/:int", "delete"),
        ]

    def test_index_controller_adds_short_name(self) -> None:
        class IndexController:
            def about(self) -> str:
                return "about"

        class MainController:
            def index(self) -> str:
                return "home"

        assert automatic_routes(IndexController) == [ActionRoute("GET", "/index/about", "about")]
        assert automatic_routes(MainController, "/site") == [ActionRoute("GET", "/site/main", "index")]


class TestResourceRoutes:
    def test_all_actions_without_class(self) -> None:
        routes = resource_routes("photos")
        assert [(r.methods, r.path, r.action) for r in routes] == [
            ("GET", "/photos", "index"),
            ("GET", "/photos/create", "create"),
            ("POST", "/photos", "store"),
            ("GET", "/photos/{photos}", "show"),
            ("GET", "/photos/{photos}/edit", "edit"),
            ("PUT|PATCH", "/photos/{photos}", "update"),
            ("DELETE", "/photos/{photos}", "destroy"),
        ]

    def test_only_defined_actions(self) -> None:
        class ReadOnly:
            def index(self) -> str:
                return ""

            def show(self, photo: str) -> str:
                return photo

        assert [r.action for r in resource_routes("photos", ReadOnly)] == ["index", "show"]

    def test_nested_name_uses_last_segment_as_key(self) -> None:
        routes = resource_routes("admin/photos")
        assert routes[3].path == "/admin/photos/{photos}"


class TestControllerRegistry:
    def test_class_passes_through(self) -> None:
        assert ControllerRegistry().resolve(ExampleController) is ExampleController

    def test_registered_name(self) -> None:
        registry = ControllerRegistry()
        registry.register(ExampleController, "Example")
        assert registry.resolve("Example") is ExampleController

    def test_import_string(self) -> None:
        assert ControllerRegistry().resolve(f"{__name__}:ExampleController") is ExampleController
        assert ControllerRegistry().resolve(f"{__name__}.ExampleController") is ExampleController

    def test_namespace_module(self, monkeypatch: pytest.MonkeyPatch) -> None:
        module = types.ModuleType("_fake_controllers")
        module.HomeController = ExampleController  # type: ignore[attr-defined]
        monkeypatch.setitem(sys.modules, "_fake_controllers", module)

        registry = ControllerRegistry(namespace="_fake_controllers")
        assert registry.resolve("HomeController") is ExampleController

    def test_scope_namespace_overrides_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        module = types.ModuleType("_fake_admin_controllers")
        module.Dashboard = ExampleController  # type: ignore[attr-defined]
        monkeypatch.setitem(sys.modules, "_fake_admin_controllers", module)

        registry = ControllerRegistry(namespace="does_not_exist_xyz")
        assert registry.resolve("Dashboard", namespace="_fake_admin_controllers") is ExampleController

    def test_directory(self, tmp_path: Path) -> None:
        (tmp_path / "PageController.py").write_text(
            "class PageController:\n    def index(self):\n        return 'page'\n"
        )
        cls = ControllerRegistry(path=tmp_path).resolve("PageController")
        assert cls.__name__ == "PageController"

    def test_not_found(self) -> None:
        with pytest.raises(ControllerNotFound, match="Missing"):
            ControllerRegistry().resolve("Missing")
        assert ControllerRegistry().find("Missing") is None


class TestActionMethod:
    def test_existing(self) -> None:
        assert action_method(ExampleController, "index") is ExampleController.index

    @pytest.mark.parametrize("action", ["missing", "_helper", "names"])
    def test_missing_or_private(self, action: str) -> None:
        with pytest.raises(MethodNotFound):
            action_method(ExampleController, action)
