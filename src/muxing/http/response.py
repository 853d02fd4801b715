"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

HTTPResponse is the value every handler returns. ResponseBuilder is a
fluent way to put one together, and the helpers at the bottom produce the
plain-text error responses the dispatcher uses.

=============================================================================
ERROR RESPONSES
=============================================================================

Every error the dispatcher reports is plain text with a trailing newline:

    HTTP/1.1 405 Method Not Allowed
    Content-Type: text/plain; charset=utf-8
    X-Content-Type-Options: nosniff
    Content-Length: 19

    Method Not Allowed\\n

error(status) uses the standard text of the status as the message;
http_error(message, status) carries arbitrary text such as a parse error.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Union, Iterable

from .status_codes import HTTPStatus, status_text


TEXT_PLAIN = "text/plain; charset=utf-8"


@dataclass
class HTTPResponse:
    """
    An HTTP response to be sent to the client.

        HTTPResponse(status=200, headers={...}, body=b"Hello, bob!")
            │
            └── to_bytes() → b"HTTP/1.1 200 OK\\r\\n...\\r\\n\\r\\nHello, bob!"
    """

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """E.g. "HTTP/1.1 200 OK"."""
        return f"{self.version} {int(self.status)} {status_text(self.status)}".rstrip()

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header; returns self for chaining."""
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: Optional[str] = None) -> bytes:
        """
        Serialize for the socket.

        Content-Length and Date are added when the handler did not set them;
        Server only when a server name is given.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))
        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if server_name and "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("iso-8859-1", errors="replace") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .text("Hello, bob!")
            .header("X-Custom", "value")
            .build())

    Every method except build() returns the builder.
    """

    def __init__(self):
        self._status: int = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: int) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Raw body; strings are encoded as UTF-8."""
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def text(self, text: Union[str, bytes], content_type: str = TEXT_PLAIN) -> "ResponseBuilder":
        """Plain-text body with a matching Content-Type."""
        self.body(text)
        self._headers["Content-Type"] = content_type
        return self

    def cors(
        self,
        origin: str = "*",
        allow_headers: Optional[Iterable[str]] = None,
    ) -> "ResponseBuilder":
        """
        Add CORS headers.

        Args:
            origin: Value of Access-Control-Allow-Origin ("*" for any).
            allow_headers: Request headers a preflight may ask for.
        """
        self._headers["Access-Control-Allow-Origin"] = origin
        if allow_headers:
            self._headers["Access-Control-Allow-Headers"] = ", ".join(allow_headers)
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an RFC 7231 HTTP-date.

    Example: "Wed, 01 Jan 2026 12:00:00 GMT"
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(body: Union[str, bytes] = "", content_type: str = TEXT_PLAIN) -> HTTPResponse:
    """200 OK with a text body."""
    return ResponseBuilder().status(HTTPStatus.OK).text(body, content_type).build()


def http_error(message: str, status: int) -> HTTPResponse:
    """
    Plain-text error response.

    The body is the message followed by a newline, and the response asks
    clients not to sniff the content type.

    Args:
        message: Error text sent to the client.
        status: HTTP status code.
    """
    return (ResponseBuilder()
        .status(status)
        .text(message + "\n")
        .header("X-Content-Type-Options", "nosniff")
        .build())


def error(status: int) -> HTTPResponse:
    """Error response whose body is the standard text of the status."""
    return http_error(status_text(status), status)


def not_found() -> HTTPResponse:
    return error(HTTPStatus.NOT_FOUND)


def method_not_allowed(allowed_methods: Optional[list[str]] = None) -> HTTPResponse:
    """
    405 Method Not Allowed.

    When the allowed methods are known they are listed in the Allow header
    (RFC 7231 requires it on 405 responses produced by the router).
    """
    response = error(HTTPStatus.METHOD_NOT_ALLOWED)
    if allowed_methods:
        response.set_header("Allow", ", ".join(allowed_methods))
    return response


def internal_error(message: Optional[str] = None) -> HTTPResponse:
    """500 with the given message, or the standard text when none is given."""
    if message is None:
        return error(HTTPStatus.INTERNAL_SERVER_ERROR)
    return http_error(message, HTTPStatus.INTERNAL_SERVER_ERROR)
