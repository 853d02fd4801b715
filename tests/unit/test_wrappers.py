"""
Unit tests for the per-route wrappers: method guard, request dump,
access log and the chain that combines them.
"""

import logging

import pytest

from muxing.config import RequestContext
from muxing.http.request import HTTPRequest
from muxing.http.response import HTTPResponse, HTTPStatus, ok
from muxing.middleware import (
    AccessLogMiddleware,
    Middleware,
    MiddlewarePipeline,
    MethodGuard,
    RequestDumpMiddleware,
    RequestLog,
    logged_handler,
    wrap_handler,
)


class RecordingHandler:
    """Final handler that records every request it receives."""

    def __init__(self, response: HTTPResponse = None):
        self.calls = []
        self.response = response

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        self.calls.append(request)
        return self.response or ok(b"body=" + request.body)


class Tag(Middleware):
    """Appends its label to a shared list on the way in."""

    def __init__(self, label, seen):
        self.label = label
        self.seen = seen

    def __call__(self, request, next):
        self.seen.append(self.label)
        return next(request)


class TestMiddlewarePipeline:
    """Tests for MiddlewarePipeline ordering."""

    def test_first_added_is_outermost(self):
        """Test that the first middleware added runs first."""
        seen = []
        handler = RecordingHandler()
        wrapped = MiddlewarePipeline().use(Tag("outer", seen), Tag("inner", seen)).wrap(handler)

        wrapped(HTTPRequest(method="GET", path="/"))

        assert seen == ["outer", "inner"]
        assert len(handler.calls) == 1

    def test_empty_pipeline_returns_handler(self):
        """Test that an empty pipeline returns the handler itself."""
        handler = RecordingHandler()

        assert MiddlewarePipeline().wrap(handler) is handler

    def test_len_and_iter(self):
        """Test pipeline length and iteration."""
        guard = MethodGuard("GET")
        pipeline = MiddlewarePipeline().add(guard)

        assert len(pipeline) == 1
        assert list(pipeline) == [guard]


class TestMethodGuard:
    """Tests for the method guard."""

    def test_matching_method_passes_response_through(self, make_request):
        """Test that a matching method reaches the handler."""
        expected = ok("inner")
        handler = RecordingHandler(expected)
        wrapped = MiddlewarePipeline().add(MethodGuard("GET")).wrap(handler)

        response = wrapped(make_request("GET", "/bad"))

        assert response is expected
        assert len(handler.calls) == 1

    def test_mismatch_is_405_and_skips_handler(self, make_request):
        """Test 405 without calling the handler on a mismatch."""
        handler = RecordingHandler()
        wrapped = MiddlewarePipeline().add(MethodGuard("POST")).wrap(handler)

        response = wrapped(make_request("GET", "/data"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.body == b"Method Not Allowed\n"
        assert handler.calls == []

    def test_comparison_is_case_sensitive(self, make_request):
        """Test that method comparison is case-sensitive."""
        handler = RecordingHandler()
        wrapped = MiddlewarePipeline().add(MethodGuard("POST")).wrap(handler)

        response = wrapped(make_request("post", "/data"))

        assert response.status == 405
        assert handler.calls == []

    @pytest.mark.parametrize("method", ["GET", "POST", "DELETE", "PURGE"])
    def test_none_accepts_any_method(self, make_request, method):
        """Test that a guard without a method accepts all."""
        handler = RecordingHandler()
        wrapped = MiddlewarePipeline().add(MethodGuard(None)).wrap(handler)

        assert wrapped(make_request(method, "/headers")).status == 200

    def test_name(self):
        """Test the guard name used in logs."""
        assert MethodGuard("GET").name == "MethodGuard[GET]"
        assert MethodGuard(None).name == "MethodGuard[ANY]"


class TestRequestDumpMiddleware:
    """Tests for the request dump wrapper."""

    def test_verbose_dumps_request(self, make_request, caplog):
        """Test that a verbose context logs the request dump."""
        handler = RecordingHandler()
        wrapped = MiddlewarePipeline().add(RequestDumpMiddleware(RequestContext(verbose=True))).wrap(handler)

        with caplog.at_level(logging.INFO, logger="muxing"):
            wrapped(make_request("POST", "/data", body=b"hello"))

        dumps = [r for r in caplog.records if r.name == "muxing.dump"]
        assert len(dumps) == 1
        message = dumps[0].getMessage()
        assert "POST /data HTTP/1.1" in message
        assert "Host: localhost:8081" in message
        assert message.endswith("hello")

    def test_quiet_does_not_dump(self, make_request, caplog):
        """Test that a quiet context logs nothing."""
        handler = RecordingHandler()
        wrapped = MiddlewarePipeline().add(RequestDumpMiddleware(RequestContext(verbose=False))).wrap(handler)

        with caplog.at_level(logging.INFO, logger="muxing"):
            wrapped(make_request("GET", "/bad"))

        assert not [r for r in caplog.records if r.name == "muxing.dump"]
        assert len(handler.calls) == 1

    def test_dump_leaves_body_intact(self, make_request):
        """Test that the handler still sees the full body."""
        handler = RecordingHandler()
        wrapped = MiddlewarePipeline().add(RequestDumpMiddleware(RequestContext())).wrap(handler)

        response = wrapped(make_request("POST", "/data", body=b"\x00binary\xff"))

        assert handler.calls[0].body == b"\x00binary\xff"
        assert response.body == b"body=\x00binary\xff"

    def test_dump_failure_is_500_and_skips_handler(self):
        """Test 500 with the error text when the dump fails."""
        handler = RecordingHandler()
        wrapped = MiddlewarePipeline().add(RequestDumpMiddleware(RequestContext())).wrap(handler)
        request = HTTPRequest(method="GET", path="/bad", headers={"x": ["☃"]})

        response = wrapped(request)

        assert response.status == 500
        assert response.body.startswith(b"cannot dump request")
        assert handler.calls == []

    def test_dump_failure_ignored_when_quiet(self):
        """Test that a quiet context never attempts the dump."""
        handler = RecordingHandler()
        wrapped = MiddlewarePipeline().add(RequestDumpMiddleware(RequestContext(verbose=False))).wrap(handler)
        request = HTTPRequest(method="GET", path="/bad", headers={"x": ["☃"]})

        assert wrapped(request).status == 200


class TestAccessLog:
    """Tests for the access log."""

    def test_logs_common_log_format_line(self, make_request, caplog):
        """Test one Common Log Format line per request."""
        wrapped = MiddlewarePipeline().add(AccessLogMiddleware()).wrap(RecordingHandler(ok("Hello, bob!")))

        with caplog.at_level(logging.INFO, logger="muxing"):
            wrapped(make_request("GET", "/name/bob?x=1"))

        lines = [r.getMessage() for r in caplog.records if r.name == "muxing.middleware.logging"]
        assert len(lines) == 1
        assert lines[0].startswith("127.0.0.1 - - [")
        assert lines[0].endswith('"GET /name/bob?x=1 HTTP/1.1" 200 11')

    def test_exception_is_logged_and_reraised(self, make_request, caplog):
        """Test that handler errors are logged and re-raised."""
        def broken(request):
            raise RuntimeError("boom")

        wrapped = MiddlewarePipeline().add(AccessLogMiddleware()).wrap(broken)

        with caplog.at_level(logging.INFO, logger="muxing"):
            with pytest.raises(RuntimeError):
                wrapped(make_request("GET", "/bad"))

        assert any(r.levelno == logging.ERROR for r in caplog.records)

    def test_request_log_to_text(self):
        """Test RequestLog formatting."""
        from datetime import datetime, timezone

        entry = RequestLog(
            client_ip="10.0.0.1",
            method="POST",
            target="/data",
            version="HTTP/1.1",
            status_code=405,
            content_length=19,
            duration_ms=0.5,
            timestamp=datetime(2026, 10, 19, 17, 42, 1, tzinfo=timezone.utc),
        )

        assert entry.to_text() == (
            '10.0.0.1 - - [19/Oct/2026:17:42:01 +0000] "POST /data HTTP/1.1" 405 19'
        )


class TestHandlerChain:
    """Tests for wrap_handler() and logged_handler()."""

    def test_dump_runs_before_guard_rejection(self, make_request, caplog):
        """Test that a rejected request is still dumped."""
        handler = RecordingHandler()
        wrapped = wrap_handler(RequestContext(verbose=True), "POST", handler)

        with caplog.at_level(logging.INFO, logger="muxing"):
            response = wrapped(make_request("GET", "/data"))

        assert response.status == 405
        assert handler.calls == []
        assert [r for r in caplog.records if r.name == "muxing.dump"]

    def test_chain_passes_matching_request(self, make_request):
        """Test the full chain for an accepted request."""
        handler = RecordingHandler()
        wrapped = wrap_handler(RequestContext(verbose=False), "POST", handler)

        response = wrapped(make_request("POST", "/data", body=b"x"))

        assert response.status == 200
        assert response.body == b"body=x"

    def test_logged_handler_logs_final_status(self, make_request, caplog):
        """Test that the access log records the guard's 405."""
        wrapped = logged_handler(RequestContext(verbose=False), "POST", RecordingHandler())

        with caplog.at_level(logging.INFO, logger="muxing"):
            wrapped(make_request("GET", "/data"))

        lines = [r.getMessage() for r in caplog.records if r.name == "muxing.middleware.logging"]
        assert lines and lines[0].endswith('"GET /data HTTP/1.1" 405 19')

    def test_chain_is_reusable(self, make_request):
        """Test that one wrapped handler serves many requests."""
        wrapped = wrap_handler(RequestContext(verbose=False), "GET", RecordingHandler())

        first = wrapped(make_request("GET", "/name/x"))
        second = wrapped(make_request("GET", "/name/x"))

        assert first.status == second.status
        assert first.body == second.body
