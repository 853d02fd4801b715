"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One line per request in Common Log Format, written after the response is
known:

    127.0.0.1 - - [19/Oct/2026:17:42:01 +0000] "GET /name/bob HTTP/1.1" 200 11
    ─────┬───       ───────────┬──────────────  ───────────┬──────────  ─┬─ ─┬
         │                     │                           │             │   │
    client ip              timestamp                  request line  status  body size

This is the outermost wrapper of every route, so requests rejected by the
method guard or failing in the dump are logged with their final status.

=============================================================================
"""

import time
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


@dataclass
class RequestLog:
    """Fields of one access log entry."""

    client_ip: str
    method: str
    target: str
    version: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: datetime

    def to_text(self) -> str:
        """Common Log Format line."""
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp.strftime("%d/%b/%Y:%H:%M:%S %z")}] '
            f'"{self.method} {self.target} {self.version}" {self.status_code} '
            f'{self.content_length}'
        )


class AccessLogMiddleware(Middleware):
    """
    Request access logging.

    Usage:
        pipeline.add(AccessLogMiddleware())          # first, outermost
        pipeline.add(RequestDumpMiddleware(context))
        pipeline.add(MethodGuard("GET"))
    """

    def __init__(self, log_level: int = logging.INFO):
        """
        Args:
            log_level: Level of the access log lines.
        """
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        timestamp = datetime.now(timezone.utc)
        start_time = time.monotonic()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        entry = RequestLog(
            client_ip=request.client_address[0],
            method=request.method,
            target=request.target,
            version=request.version,
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=(time.monotonic() - start_time) * 1000,
            timestamp=timestamp,
        )
        logger.log(self.log_level, entry.to_text())

        return response
