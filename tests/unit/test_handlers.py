"""
Unit tests for the demonstration handlers, called directly and through the
application's route table.
"""

import logging

import pytest

from muxing import ServerConfig, create_app
from muxing.handlers import (
    CORS_ALLOW_HEADERS,
    get_bad,
    get_data,
    get_echo,
    get_headers,
    get_name,
)
from muxing.http.request import HTTPRequest, parse_request


@pytest.fixture
def app():
    """Demonstration app, not started."""
    return create_app(ServerConfig(host="127.0.0.1", port=0, verbose=False))


class TestGetName:
    """Tests for get_name."""

    def test_greets_path_parameter(self, make_request):
        """Test greeting the path parameter."""
        request = make_request("GET", "/name/bob")
        request.path_params = {"param": "bob"}

        response = get_name(request)

        assert response.status == 200
        assert response.body == b"Hello, bob!"

    def test_through_router(self, app, make_request):
        """Test the handler through the route table."""
        response = app.dispatch(make_request("GET", "/name/alice"))

        assert response.status == 200
        assert response.body == b"Hello, alice!"

    def test_repeated_requests_are_identical(self, app, make_request):
        """Test that repeated requests get identical responses."""
        first = app.dispatch(make_request("GET", "/name/x"))
        second = app.dispatch(make_request("GET", "/name/x"))

        assert (first.status, first.body) == (second.status, second.body)

    def test_post_rejected_by_guard(self, app, make_request):
        """Test 405 from the GET guard for POST."""
        response = app.dispatch(make_request("POST", "/name/bob"))

        assert response.status == 405
        assert "Allow" not in response.headers

    def test_unicode_parameter(self, app):
        """Test a percent-encoded UTF-8 parameter."""
        request = parse_request(b"GET /name/Jos%C3%A9 HTTP/1.1\r\n\r\n")

        assert app.dispatch(request).body == "Hello, José!".encode("utf-8")

    def test_empty_parameter_is_not_found(self, app, make_request):
        """Test 404 for an empty parameter segment."""
        assert app.dispatch(make_request("GET", "/name/")).status == 404


class TestGetData:
    """Tests for get_data."""

    def test_echoes_body(self, app, make_request):
        """Test echoing the request body."""
        response = app.dispatch(make_request("POST", "/data", body=b"hello"))

        assert response.status == 200
        assert response.body == b"I got message:\nhello"

    def test_empty_body(self, make_request):
        """Test echoing an empty body."""
        assert get_data(make_request("POST", "/data")).body == b"I got message:\n"

    def test_binary_body_passes_verbatim(self, app, make_request):
        """Test echoing every byte value unchanged."""
        body = bytes(range(256))

        response = app.dispatch(make_request("POST", "/data", body=body))

        assert response.body == b"I got message:\n" + body

    def test_chunked_body_is_decoded(self, app):
        """Test echoing a chunked body without its framing."""
        request = parse_request(
            b"POST /data HTTP/1.1\r\n"
            b"Transfer-Encoding: chunked\r\n"
            b"\r\n"
            b"5\r\nhello\r\n0\r\n\r\n"
        )

        response = app.dispatch(request)

        assert response.body == b"I got message:\nhello"

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
    def test_other_methods_are_405(self, app, make_request, method):
        """Test router 405 with Allow for other methods."""
        response = app.dispatch(make_request(method, "/data"))

        assert response.status == 405
        assert response.headers["Allow"] == "POST"


class TestGetBad:
    """Tests for get_bad."""

    def test_always_500(self, make_request):
        """Test that the handler always answers 500."""
        response = get_bad(make_request("GET", "/bad"))

        assert response.status == 500
        assert response.body == b"Internal Server Error\n"

    def test_through_router(self, app, make_request):
        """Test the handler through the route table."""
        for _ in range(3):
            assert app.dispatch(make_request("GET", "/bad")).status == 500

    def test_post_is_405(self, app, make_request):
        """Test 405 for POST."""
        assert app.dispatch(make_request("POST", "/bad")).status == 405


class TestGetHeaders:
    """Tests for get_headers."""

    @pytest.mark.parametrize("method", ["GET", "POST"])
    def test_sum(self, app, make_request, method):
        """Test summing headers a and b."""
        response = app.dispatch(make_request(method, "/headers", headers={"a": "3", "b": "4"}))

        assert response.status == 200
        assert response.headers["a+b"] == "7"
        assert response.body == b""

    @pytest.mark.parametrize("a, b, expected", [
        ("-5", "2", "-3"),
        ("+1", "1", "2"),
        ("0", "0", "0"),
        ("99999999999999999999", "1", "100000000000000000000"),
    ])
    def test_integer_forms(self, make_request, a, b, expected):
        """Test signed and very large integers."""
        response = get_headers(make_request("GET", "/headers", headers={"A": a, "B": b}))

        assert response.headers["a+b"] == expected

    def test_uses_first_value(self):
        """Test that only the first value of a header counts."""
        request = parse_request(b"GET /headers HTTP/1.1\r\nA: 1\r\nA: 100\r\nB: 2\r\n\r\n")

        assert get_headers(request).headers["a+b"] == "3"

    def test_non_integer(self, make_request):
        """Test 500 naming the header and value that are not integers."""
        response = get_headers(make_request("GET", "/headers", headers={"a": "x", "b": "4"}))

        assert response.status == 500
        assert b"'x'" in response.body
        assert b"'a'" in response.body

    @pytest.mark.parametrize("value", ["1.5", "0x10", " ", "1 2"])
    def test_rejects_non_decimal(self, value):
        """Test rejecting values that are not plain decimal."""
        request = HTTPRequest(method="GET", path="/headers", headers={"a": [value], "b": ["1"]})

        assert get_headers(request).status == 500

    def test_missing_header(self, make_request):
        """Test 500 for a missing header."""
        response = get_headers(make_request("GET", "/headers", headers={"a": "3"}))

        assert response.status == 500
        assert response.body == b"missing required header 'b'\n"

    def test_empty_header(self, make_request):
        """Test 500 for an empty header."""
        response = get_headers(make_request("GET", "/headers", headers={"a": "", "b": "4"}))

        assert response.status == 500


class TestGetEcho:
    """Tests for get_echo."""

    def test_cors_headers_and_dump(self, make_request):
        """Test the CORS headers and the wire dump body."""
        response = get_echo(make_request("GET", "/get-echo?x=1", headers={"X-Test": "yes"}))

        assert response.status == 200
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert response.headers["Access-Control-Allow-Headers"] == ", ".join(CORS_ALLOW_HEADERS)
        assert response.body.startswith(b"GET /get-echo?x=1 HTTP/1.1\r\nHost: localhost:8081\r\n")
        assert b"X-Test: yes\r\n" in response.body

    def test_logs_echo(self, make_request, caplog):
        """Test the echo log line."""
        with caplog.at_level(logging.INFO, logger="muxing"):
            get_echo(make_request("GET", "/get-echo"))

        assert any("Echoing back request made to /get-echo" in r.getMessage() for r in caplog.records)

    def test_dump_failure_is_500(self):
        """Test 500 when the request cannot be dumped."""
        request = HTTPRequest(method="GET", path="/get-echo", headers={"x": ["☃"]})

        response = get_echo(request)

        assert response.status == 500
        assert b"cannot dump request" in response.body

    def test_post_rejected_by_guard(self, app, make_request):
        """Test 405 from the GET guard for POST."""
        assert app.dispatch(make_request("POST", "/get-echo")).status == 405


class TestAppRoutes:
    """Tests for the application route table."""

    def test_unknown_path_is_404(self, app, make_request):
        """Test 404 for an unknown path."""
        response = app.dispatch(make_request("GET", "/nope"))

        assert response.status == 404
        assert response.body == b"Not Found\n"

    def test_all_routes_registered(self, app):
        """Test that every endpoint is registered in order."""
        paths = [route.path for route in app.router.routes()]

        assert paths == ["/bad", "/name/{param}", "/data", "/headers", "/get-echo"]

    def test_handler_exception_becomes_500(self, app, make_request):
        """Test that a raising handler becomes 500."""
        def broken(request):
            raise RuntimeError("boom")

        app.add_route("/broken", broken)

        response = app.dispatch(make_request("GET", "/broken"))

        assert response.status == 500
        assert response.body == b"Internal Server Error\n"
