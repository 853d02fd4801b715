"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The subset of RFC 7231 status codes the dispatcher and its runtime emit,
with their standard reason phrases.

The reason phrase doubles as the "standard text" of a status: error
responses such as 405 and 500 carry it as their plain-text body.

    HTTP/1.1 405 Method Not Allowed        ← status line
    ...
    Method Not Allowed                     ← body of an error response

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the server.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.METHOD_NOT_ALLOWED == 405
        True
        >>> HTTPStatus.METHOD_NOT_ALLOWED.phrase
        'Method Not Allowed'
    """

    # 2xx SUCCESS
    OK = 200
    NO_CONTENT = 204

    # 3xx REDIRECTION
    MOVED_PERMANENTLY = 301
    FOUND = 302

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line and error bodies."""
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.FOUND: "Found",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE: "Request Header Fields Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.NOT_IMPLEMENTED: "Not Implemented",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}


def status_text(status: int) -> str:
    """
    Standard text for a status code, including codes outside the enum.

        status_text(405)  # "Method Not Allowed"
        status_text(299)  # ""
    """
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""
