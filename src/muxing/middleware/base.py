"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

A middleware sits between the router and a handler. It receives the request
and the next handler in the chain, and either forwards the request or answers
on its own (short-circuit).

    ┌─────────────────────────────────────────────────────────────────────┐
    │              CHAIN FOR ONE ROUTE                                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Request ───────────────────────────────────────────────►          │
    │                                                                      │
    │   ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌──────────┐     │
    │   │  Access  │───►│ Request  │───►│  Method  │───►│ Handler  │     │
    │   │   Log    │    │   Dump   │    │  Guard   │    │          │     │
    │   └──────────┘    └──────────┘    └──────────┘    └──────────┘     │
    │                                        │                            │
    │                                        └── 405 (short-circuit)      │
    │                                                                      │
    │   ◄─────────────────────────────────────────────────── Response     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The chain is assembled once, when the route is registered, and is immutable
afterwards. Middleware objects must not keep per-request state.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The next handler in the chain: request in, response out
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Abstract base class for middleware.

    Subclasses implement __call__:

        class AddHeader(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.set_header("X-Custom", "value")
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process a request.

        Args:
            request: The incoming request.
            next: Call to continue down the chain.

        Returns:
            The response, produced here or by the rest of the chain.
        """

    @property
    def name(self) -> str:
        """Name used in debug logs."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    An ordered list of middleware that can wrap a handler.

        pipeline = MiddlewarePipeline()
        pipeline.add(RequestDumpMiddleware(context))   # outer
        pipeline.add(MethodGuard("GET"))               # inner
        handler = pipeline.wrap(get_name)

    The first middleware added is the outermost one.
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append a middleware; returns self for chaining."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        """Append several middleware in order."""
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap a handler with every middleware in the pipeline.

        Given [MW1, MW2, MW3] the result calls MW1 → MW2 → MW3 → handler,
        so wrapping proceeds in reverse order.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    def _create_wrapped_handler(
        self,
        middleware: Middleware,
        next_handler: NextHandler
    ) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)

        wrapped.__name__ = f"{middleware.name}({getattr(next_handler, '__name__', 'handler')})"
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
