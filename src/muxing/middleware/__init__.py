"""
=============================================================================
MIDDLEWARE COMPONENTS
=============================================================================

    base.py           Middleware ABC and MiddlewarePipeline
    method_guard.py   405 for requests with an unexpected method
    dump.py           Full request dump when verbose
    logging.py        Common Log Format access log
    chain.py          The per-route chain: access log → dump → guard

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .method_guard import MethodGuard
from .dump import RequestDumpMiddleware
from .logging import AccessLogMiddleware, RequestLog
from .chain import wrap_handler, logged_handler

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "MethodGuard",
    "RequestDumpMiddleware",
    "AccessLogMiddleware",
    "RequestLog",
    "wrap_handler",
    "logged_handler",
]
