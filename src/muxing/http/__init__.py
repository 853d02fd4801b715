"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

    request.py       HTTPRequest, RequestParser, request dumps
    response.py      HTTPResponse, ResponseBuilder, error helpers
    router.py        Route table with {name} path parameters
    status_codes.py  HTTPStatus and standard status texts

=============================================================================
"""

from .request import (
    HTTPRequest,
    HTTPParseError,
    RequestDumpError,
    RequestParser,
    canonical_header_name,
    decode_chunked,
    dump_request,
    parse_request,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    error,
    http_error,
    not_found,
    method_not_allowed,
    internal_error,
)
from .router import Router, Route, RouteMatch, RouteConflictError, Handler
from .status_codes import HTTPStatus, status_text

__all__ = [
    # Requests
    "HTTPRequest",
    "HTTPParseError",
    "RequestDumpError",
    "RequestParser",
    "canonical_header_name",
    "decode_chunked",
    "dump_request",
    "parse_request",
    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "error",
    "http_error",
    "not_found",
    "method_not_allowed",
    "internal_error",
    # Routing
    "Router",
    "Route",
    "RouteMatch",
    "RouteConflictError",
    "Handler",
    # Status codes
    "HTTPStatus",
    "status_text",
]
