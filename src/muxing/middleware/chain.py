"""
Per-route handler chains.

wrap_handler() builds the dispatch wrapper every route gets:

    wrap_handler(context, "GET", get_name)

        RequestDumpMiddleware(context)    dump when context.verbose
              │
              ▼
        MethodGuard("GET")                405 on any other method
              │
              ▼
        get_name(request)

logged_handler() puts an AccessLogMiddleware in front of that.
"""

from typing import Optional

from .base import MiddlewarePipeline, NextHandler
from .dump import RequestDumpMiddleware
from .logging import AccessLogMiddleware
from .method_guard import MethodGuard
from ..config import RequestContext


def wrap_handler(
    context: RequestContext,
    method: Optional[str],
    handler: NextHandler,
) -> NextHandler:
    """
    Wrap a handler with the request dump and the method guard.

    Args:
        context: Shared request context (verbosity).
        method: Method the handler expects; None accepts any.
        handler: The final handler.

    Returns:
        The wrapped handler. It holds no per-request state and can be
        called from several worker threads at once.
    """
    pipeline = MiddlewarePipeline().use(
        RequestDumpMiddleware(context),
        MethodGuard(method),
    )
    return pipeline.wrap(handler)


def logged_handler(
    context: RequestContext,
    method: Optional[str],
    handler: NextHandler,
) -> NextHandler:
    """wrap_handler() with an access log line for every request."""
    return MiddlewarePipeline().add(AccessLogMiddleware()).wrap(
        wrap_handler(context, method, handler)
    )
