"""
Method guard: rejects requests whose method differs from the one a handler
expects, before the handler runs.

    MethodGuard("POST")

        POST /data   →  handler(request)          (response passed through)
        GET  /data   →  405 Method Not Allowed    (handler never called)

The comparison is an exact, case-sensitive string match: "post" is not
"POST". A guard built with method=None accepts every method.
"""

from typing import Optional
import logging

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, method_not_allowed


logger = logging.getLogger(__name__)


class MethodGuard(Middleware):
    """Answer 405 unless the request method equals the expected method."""

    def __init__(self, method: Optional[str]):
        """
        Args:
            method: Expected method, e.g. "GET". None disables the check.
        """
        self._method = method

    @property
    def method(self) -> Optional[str]:
        return self._method

    @property
    def name(self) -> str:
        return f"MethodGuard[{self._method or 'ANY'}]"

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        if self._method is not None and request.method != self._method:
            logger.debug(
                f"Rejected {request.method} {request.path}: expected {self._method}"
            )
            return method_not_allowed()
        return next(request)
