"""Tests for waypoint.errors — exception hierarchy and error messages."""

import pytest

from waypoint.errors import (
    ConfigurationError,
    ControllerNotFound,
    DanglingModifier,
    DuplicateName,
    DuplicatePatternKey,
    HTTPError,
    InvalidRegistration,
    MethodNotFound,
    MiddlewareContractError,
    MiddlewareNotFound,
    NotFound,
    RouteNotFound,
    UnresolvableParameter,
    WaypointError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "cls",
        [InvalidRegistration, DanglingModifier, DuplicateName, DuplicatePatternKey],
    )
    def test_registration_errors_are_configuration_errors(self, cls: type) -> None:
        assert issubclass(cls, ConfigurationError)

    @pytest.mark.parametrize(
        "cls",
        [
            ConfigurationError,
            HTTPError,
            ControllerNotFound,
            MethodNotFound,
            UnresolvableParameter,
            MiddlewareContractError,
            MiddlewareNotFound,
        ],
    )
    def test_everything_is_waypoint_error(self, cls: type) -> None:
        assert issubclass(cls, WaypointError)

    def test_route_not_found_is_not_found(self) -> None:
        assert issubclass(RouteNotFound, NotFound)
        assert issubclass(NotFound, HTTPError)


class TestHTTPError:
    def test_str_with_detail(self) -> None:
        assert str(HTTPError(status=400, detail="Bad request body")) == "400: Bad request body"

    def test_str_without_detail(self) -> None:
        assert str(HTTPError(status=500)) == "500"

    def test_frozen(self) -> None:
        err = HTTPError(status=400)
        with pytest.raises(AttributeError):
            err.status = 500  # type: ignore[misc]


class TestNotFound:
    def test_defaults(self) -> None:
        err = NotFound()
        assert err.status == 404
        assert err.detail == "Not Found"

    def test_route_not_found_message(self) -> None:
        err = RouteNotFound("GET", "/missing")
        assert err.status == 404
        assert err.detail == "No route matches GET '/missing'"

    def test_catchable_as_http_error(self) -> None:
        with pytest.raises(HTTPError):
            raise RouteNotFound("POST", "/")


class TestMessages:
    def test_duplicate_name(self) -> None:
        err = DuplicateName("users.show")
        assert err.name == "users.show"
        assert "users.show" in str(err)

    def test_duplicate_pattern_key(self) -> None:
        err = DuplicatePatternKey("year")
        assert err.key == "year"
        assert "year" in str(err)

    def test_controller_not_found(self) -> None:
        assert str(ControllerNotFound("Missing")) == "Controller 'Missing' not found."

    def test_method_not_found(self) -> None:
        err = MethodNotFound("UserController", "show")
        assert err.controller == "UserController"
        assert err.action == "show"

    def test_unresolvable_parameter_with_reason(self) -> None:
        err = UnresolvableParameter("show", "db", "no provider")
        assert str(err) == "Cannot resolve parameter 'db' of show: no provider"

    def test_unresolvable_parameter_without_reason(self) -> None:
        assert str(UnresolvableParameter("show", "db")) == "Cannot resolve parameter 'db' of show"
