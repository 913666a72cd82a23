"""Tests for waypoint.routing.router — registration API, scopes, and lookups."""

import pytest

from waypoint.config import RouterConfig
from waypoint.errors import DanglingModifier, DuplicateName, DuplicatePatternKey, InvalidRegistration
from waypoint.http.request import Request
from waypoint.middleware.protocol import Position
from waypoint.routing.route import CallableHandler, ControllerAction
from waypoint.routing.router import Router


def home() -> str:
    return "home"


class PageController:
    def show(self, slug: str) -> str:
        return f"page {slug}"


class TestRegistration:
    def test_verbs_are_chainable(self) -> None:
        router = Router()
        result = router.get("/a", home).post("/b", home).put("/c", home).patch("/d", home)
        result.delete("/e", home).head("/f", home).options("/g", home).any("/h", home)
        assert result is router
        assert [sorted(route.methods)[0] for route in router.routes()] == [
            "GET",
            "POST",
            "PUT",
            "PATCH",
            "DELETE",
            "HEAD",
            "OPTIONS",
            "ANY",
        ]

    def test_ajax_verbs(self) -> None:
        router = Router()
        router.xget("/a", home).xpost("/a", home).xput("/a", home).xpatch("/a", home)
        router.xdelete("/a", home).xhead("/a", home).xoptions("/a", home)
        assert {method for route in router.routes() for method in route.methods} == {
            "XGET",
            "XPOST",
            "XPUT",
            "XPATCH",
            "XDELETE",
            "XHEAD",
            "XOPTIONS",
        }

    def test_add_with_several_methods(self) -> None:
        router = Router()
        router.add("get|post", "/form", home)
        (route,) = router.routes()
        assert route.methods == frozenset({"GET", "POST"})
        assert router.routes("POST") == [route]

    def test_invalid_method_leaves_table_untouched(self) -> None:
        router = Router()
        with pytest.raises(InvalidRegistration):
            router.register("FETCH", "/a", home)
        assert router.routes() == []

    def test_invalid_handler(self) -> None:
        with pytest.raises(InvalidRegistration):
            Router().get("/a", 42)

    def test_path_normalised(self) -> None:
        router = Router()
        router.get("users//42/", home)
        assert router.routes()[0].path == "/users/42"

    def test_optional_segment_expands(self) -> None:
        router = Router()
        router.get("/admin/{slug}?", home).name("admin")
        paths = [route.path for route in router.routes()]
        assert paths == ["/admin/{slug}", "/admin"]
        assert {route.name for route in router.routes()} == {"admin"}

    def test_controller_string_resolved_when_registered(self) -> None:
        router = Router()
        router.register_controller(PageController)
        router.get("/p/{slug}", "PageController::show")
        assert router.routes()[0].execute == ControllerAction(PageController, "show")

    def test_unknown_controller_kept_for_dispatch(self) -> None:
        router = Router()
        router.get("/p", "LaterController@index")
        assert router.routes()[0].execute == ControllerAction("LaterController", "index")

    def test_options_mapping(self) -> None:
        router = Router()
        router.get("/x", home, {"name": "x", "prefix": "/api", "port": 8080, "as": "v1."})
        route = router.routes()[0]
        assert route.path == "/api/x"
        assert route.name == "v1.x"
        assert route.options.port == 8080

    def test_unknown_option_keys_kept_as_extra(self) -> None:
        router = Router()
        router.get("/x", home, {"cache": "public"})
        assert router.routes()[0].options.extra == {"cache": "public"}


class TestModifiers:
    def test_name(self) -> None:
        router = Router()
        router.get("/home", home).name("homeIndex")
        assert router.route_by_name("homeIndex") is router.routes()[0]

    def test_name_without_route(self) -> None:
        with pytest.raises(DanglingModifier):
            Router().name("x")

    def test_middleware_without_route(self) -> None:
        with pytest.raises(DanglingModifier):
            Router().middleware(lambda req, res, args: res)

    def test_duplicate_name(self) -> None:
        router = Router()
        router.get("/a", home).name("a")
        with pytest.raises(DuplicateName):
            router.get("/b", home).name("a")

    def test_middleware_applies_to_last_registration_only(self) -> None:
        def guard(request, response, arguments):  # type: ignore[no-untyped-def]
            return response

        router = Router()
        router.get("/a", home).get("/b", home).middleware(guard, Position.BEFORE)
        first, second = router.routes()
        assert not first.options.middleware
        assert second.options.middleware.before == (guard,)

    def test_middleware_list_and_string_position(self) -> None:
        router = Router()
        router.get("/a", home).middleware(["Auth", "Audit"], "after")
        assert router.routes()[0].options.middleware.after == ("Auth", "Audit")

    def test_invalid_middleware(self) -> None:
        router = Router()
        router.get("/a", home)
        with pytest.raises(InvalidRegistration):
            router.middleware(42)  # type: ignore[arg-type]

    def test_where_adds_pattern(self) -> None:
        router = Router()
        router.where("year", r"\d{4}").get("/archive/:year", home)
        assert router.resolve("GET", "/archive/2024") is not None
        assert router.resolve("GET", "/archive/24") is None

    def test_duplicate_pattern(self) -> None:
        with pytest.raises(DuplicatePatternKey):
            Router().pattern("int", r"\d")

    def test_invalid_pattern_is_a_registration_error(self) -> None:
        router = Router()
        with pytest.raises(InvalidRegistration):
            router.where("code", "[a-z")
        with pytest.raises(InvalidRegistration):
            router.where("code", r"(?P<code>\w+)")


class TestScopes:
    def test_group_prefix_and_name_prefix(self) -> None:
        router = Router()

        def admin(r: Router) -> None:
            r.get("/login", home).name("login")
            r.get("/", home).name("dashboard")

        router.group("/admin", admin, as_="admin.")
        assert router.route("admin.login") == "/admin/login"
        assert router.route("admin.dashboard") == "/admin"

    def test_nested_groups(self) -> None:
        router = Router()
        router.group("/api", lambda r: r.group("/v1", lambda r2: r2.get("/users", home)))
        assert router.routes()[0].path == "/api/v1/users"

    def test_scope_restored_after_block(self) -> None:
        router = Router()
        router.group("/admin", lambda r: r.get("/in", home))
        router.get("/out", home)
        assert [route.path for route in router.routes()] == ["/admin/in", "/out"]
        assert router.scope.prefix == ""

    def test_scope_restored_when_block_raises(self) -> None:
        router = Router()

        def broken(r: Router) -> None:
            r.group("/inner", lambda r2: r2.get("/x", 42))

        with pytest.raises(InvalidRegistration):
            router.group("/outer", broken, middleware=["Auth"])
        router.get("/after", home)

        route = router.routes()[0]
        assert route.path == "/after"
        assert not route.options.middleware
        assert router.scope.prefix == ""

    def test_domain_port_ip_accumulate(self) -> None:
        router = Router()

        def inner(r: Router) -> None:
            r.ip("10.0.0.2", lambda r2: r2.get("/x", home))

        router.domain(
            "{account}.example.com",
            lambda r: r.port(8080, lambda r2: r2.ip(["10.0.0.1"], inner)),
        )
        options = router.routes()[0].options
        assert options.domain == "{account}.example.com"
        assert options.port == 8080
        assert options.ip == frozenset({"10.0.0.1", "10.0.0.2"})

    def test_invalid_ip(self) -> None:
        with pytest.raises(InvalidRegistration, match="not-an-ip"):
            Router().ip(["127.0.0.1", "not-an-ip"], lambda r: None)

    def test_invalid_port(self) -> None:
        with pytest.raises(InvalidRegistration):
            Router().port(70000, lambda r: None)

    def test_scope_middleware_precedes_route_middleware(self) -> None:
        router = Router()
        router.group("/g", lambda r: r.get("/x", home).middleware("Inner"), middleware=["Outer"])
        assert router.routes()[0].options.middleware.both == ("Outer", "Inner")

    def test_scope_before_after_options(self) -> None:
        router = Router()
        router.group("/g", lambda r: r.get("/x", home), before="Auth", after=["Log"])
        spec = router.routes()[0].options.middleware
        assert spec.before == ("Auth",)
        assert spec.after == ("Log",)

    def test_scope_controller_namespace(self) -> None:
        router = Router()
        router.group("/g", lambda r: r.get("/x", "Thing::go"), namespace="my.controllers")
        assert router.routes()[0].options.controller_namespace == "my.controllers"


class TestLookups:
    def test_routes_by_method(self) -> None:
        router = Router()
        router.get("/a", home).post("/b", home)
        assert [route.path for route in router.routes("get")] == ["/a"]

    def test_route_by_name_unknown(self) -> None:
        assert Router().route_by_name("nope") is None

    def test_route_generation(self) -> None:
        router = Router()
        router.get("/user/{id}/{slug}", ["User", "profile"]).name("user_profile")
        assert router.route("user_profile", {"id": 5, "slug": "admin"}) == "/user/5/admin"

    def test_route_unknown_name_passes_through(self) -> None:
        assert Router().route("/literal/path") == "/literal/path"

    def test_handler_ref_types(self) -> None:
        router = Router()
        router.get("/a", home)
        assert router.routes()[0].execute == CallableHandler(home)


class TestRequestInterpretation:
    def test_base_path_stripped(self) -> None:
        router = Router(RouterConfig(base_path="/app"))
        assert router.request_path(Request.from_url("GET", "/app/users")) == "/users"
        assert router.request_path(Request.from_url("GET", "/app")) == "/"
        assert router.request_path(Request.from_url("GET", "/application")) == "/application"

    def test_default_ports(self) -> None:
        router = Router()
        assert router.request_port(Request.from_url("GET", "http://example.com/")) == 80
        assert router.request_port(Request.from_url("GET", "https://example.com/")) == 443
        assert router.request_port(Request.from_url("GET", "http://example.com:8080/")) == 8080

    def test_ajax_method(self) -> None:
        request = Request.from_url("post", "/", headers={"X-Requested-With": "XMLHttpRequest"})
        assert Router().request_method(request) == "XPOST"

    def test_method_override(self) -> None:
        request = Request.from_url("POST", "/", form={"_method": "delete"})
        assert Router().request_method(request) == "POST"
        assert Router(RouterConfig(variable_method=True)).request_method(request) == "DELETE"

    def test_method_override_ignores_unsupported(self) -> None:
        request = Request.from_url("POST", "/?_method=TRACE")
        assert Router(RouterConfig(variable_method=True)).request_method(request) == "POST"
