"""
=============================================================================
DEMONSTRATION HANDLERS
=============================================================================

The five endpoints the dispatcher serves. Each is a plain function taking an
HTTPRequest and returning an HTTPResponse; method checks, dumps and access
logs are added around them at registration time (see muxing.app).

    ┌────────────┬────────────────┬──────────────────────────────────────┐
    │ Handler    │ Route          │ Response                             │
    ├────────────┼────────────────┼──────────────────────────────────────┤
    │ get_echo   │ /get-echo      │ 200, CORS headers, raw request dump  │
    │ get_bad    │ /bad           │ 500 Internal Server Error            │
    │ get_name   │ /name/{param}  │ 200 "Hello, {param}!"                │
    │ get_data   │ /data          │ 200 "I got message:\\n{body}"         │
    │ get_headers│ /headers       │ 200, header a+b = int(a) + int(b)    │
    └────────────┴────────────────┴──────────────────────────────────────┘

Failures are answered where they happen with a 500 carrying the error text;
nothing here raises past the handler.

=============================================================================
"""

import logging
import re

from ..http.request import HTTPRequest, RequestDumpError, dump_request
from ..http.response import (
    HTTPResponse,
    ResponseBuilder,
    HTTPStatus,
    ok,
    error,
    internal_error,
)


logger = logging.getLogger(__name__)


CORS_ALLOW_HEADERS = ["Content-Range", "Content-Disposition", "Content-Type", "ETag"]

# Optional sign followed by ASCII digits, nothing else
_INTEGER = re.compile(r"[+-]?[0-9]+")


def get_echo(request: HTTPRequest) -> HTTPResponse:
    """
    Echo the incoming request back to the client.

    The body is the request in wire format (request line, headers, blank
    line, body). CORS headers allow any origin and the usual preflight
    headers.
    """
    logger.info(
        f"Echoing back request made to {request.path} "
        f"to client ({request.client_address[0]}:{request.client_address[1]})"
    )

    try:
        dump = dump_request(request, body=True)
    except RequestDumpError as e:
        return internal_error(str(e))

    return (ResponseBuilder()
        .status(HTTPStatus.OK)
        .cors(origin="*", allow_headers=CORS_ALLOW_HEADERS)
        .text(dump)
        .build())


def get_bad(request: HTTPRequest) -> HTTPResponse:
    """Always fail with 500."""
    return error(HTTPStatus.INTERNAL_SERVER_ERROR)


def get_name(request: HTTPRequest) -> HTTPResponse:
    """Greet the {param} path parameter."""
    param = request.path_params.get("param", "")
    return ok(f"Hello, {param}!")


def get_data(request: HTTPRequest) -> HTTPResponse:
    """Answer with the request body prefixed by "I got message:"."""
    return ok(b"I got message:\n" + request.body)


def get_headers(request: HTTPRequest) -> HTTPResponse:
    """
    Add the integer headers "a" and "b".

    Only the first value of each header is used. The sum goes into the
    response header "a+b"; there is no body.

        A: 3
        B: 4      →   a+b: 7

    A missing header or a value that is not a base-10 integer yields 500
    with a message naming the header.
    """
    try:
        a = _int_header(request, "a")
        b = _int_header(request, "b")
    except ValueError as e:
        return internal_error(str(e))

    return (ResponseBuilder()
        .status(HTTPStatus.OK)
        .header("a+b", str(a + b))
        .build())


def _int_header(request: HTTPRequest, name: str) -> int:
    """
    First value of a header parsed as a base-10 integer.

    Raises:
        ValueError: If the header is absent or not an integer.
    """
    values = request.get_header_values(name)
    if not values:
        raise ValueError(f"missing required header {name!r}")

    value = values[0]
    if not _INTEGER.fullmatch(value):
        raise ValueError(f"invalid integer {value!r} in header {name!r}")
    return int(value)
