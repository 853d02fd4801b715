"""
=============================================================================
REQUEST DUMP MIDDLEWARE
=============================================================================

Writes the complete inbound request to the log before anything else looks
at it, when the shared RequestContext asks for verbose output.

    2026-10-19 17:42:01 [INFO] muxing.dump:
    POST /data HTTP/1.1
    Host: localhost:8081
    Content-Length: 5
    Content-Type: text/plain

    hello

=============================================================================
ORDERING
=============================================================================

This middleware runs OUTSIDE the method guard, so a request that is about
to be rejected with 405 is still dumped. A failed dump ends the request
with 500 and the error text; nothing further down the chain runs.

The dump only reads request.body (bytes are immutable), so the handler sees
exactly the body the client sent.

=============================================================================
"""

import logging

from .base import Middleware, NextHandler
from ..config import RequestContext
from ..http.request import HTTPRequest, RequestDumpError, dump_request
from ..http.response import HTTPResponse, internal_error


logger = logging.getLogger(__name__)

# Dumps go to their own logger so they can be routed or silenced separately
dump_logger = logging.getLogger("muxing.dump")


class RequestDumpMiddleware(Middleware):
    """Log a full request dump when context.verbose is set."""

    def __init__(self, context: RequestContext):
        """
        Args:
            context: Process-wide request context; only its verbose flag is
                     read, on every request.
        """
        self._context = context

    @property
    def context(self) -> RequestContext:
        return self._context

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        if self._context.verbose:
            try:
                dump = dump_request(request, body=True)
            except RequestDumpError as e:
                logger.error(f"Failed to dump {request.method} {request.path}: {e}")
                return internal_error(str(e))

            dump_logger.info("\n" + dump.decode("iso-8859-1"))

        return next(request)
