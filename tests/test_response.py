"""Tests for waypoint.http.response — immutable chainable Response."""

import pytest

from waypoint.http.response import Response


class TestTransformations:
    def test_defaults(self) -> None:
        resp = Response()
        assert resp.body == ""
        assert resp.status == 200
        assert resp.content_type == "text/html; charset=utf-8"
        assert resp.headers == ()

    def test_with_status_returns_new_instance(self) -> None:
        original = Response("ok")
        changed = original.with_status(404)
        assert changed.status == 404
        assert original.status == 200

    def test_with_header_appends(self) -> None:
        resp = Response().with_header("X-One", "1").with_headers({"X-Two": "2"})
        assert resp.headers == (("X-One", "1"), ("X-Two", "2"))

    def test_header_lookup_is_case_insensitive(self) -> None:
        resp = Response().with_header("X-Trace", "abc")
        assert resp.header("x-trace") == "abc"
        assert resp.header("x-missing") is None

    def test_with_body_and_content_type(self) -> None:
        resp = Response("a").with_body("b").with_content_type("text/plain")
        assert resp.body == "b"
        assert resp.content_type == "text/plain"

    def test_frozen(self) -> None:
        with pytest.raises(AttributeError):
            Response().status = 500  # type: ignore[misc]


class TestAppend:
    def test_str_append(self) -> None:
        assert Response("Hello, ").append("World").body == "Hello, World"

    def test_mixed_append_becomes_bytes(self) -> None:
        resp = Response("a").append(b"b")
        assert resp.body == b"ab"
        assert resp.text == "ab"

    def test_empty_append_is_identity(self) -> None:
        resp = Response("x")
        assert resp.append("") is resp

    def test_body_bytes(self) -> None:
        assert Response("é").body_bytes == "é".encode()
