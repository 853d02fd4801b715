"""
=============================================================================
ROUTE TABLE
=============================================================================

Maps path patterns to handlers and extracts path parameters.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /name/bob                                                      │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  Registered Routes:                                          │   │
    │   │    GET  /bad                                                 │   │
    │   │    ANY  /name/{param}        ← MATCH                         │   │
    │   │    POST /data                                                │   │
    │   │    ANY  /headers                                             │   │
    │   │    ANY  /get-echo                                            │   │
    │   │                                                              │   │
    │   │  Extracted: path_params = {"param": "bob"}                  │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   handler(request)   # request.path_params["param"] == "bob"        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ROUTE PATTERNS
=============================================================================

A pattern is a sequence of "/"-separated segments. Each segment is either

    literal      /headers          matches exactly "headers"
    {name}       /name/{param}     matches exactly one non-empty segment

There are no wildcards spanning several segments, and no trailing-slash
normalization: "/name/bob/" does not match "/name/{param}".

Patterns compile to anchored regular expressions:

    /name/{param}   →   ^/name/(?P<param>[^/]+)$

=============================================================================
CONFLICTS
=============================================================================

Two routes conflict when they have the same shape (same literal segments,
parameters in the same positions, whatever the parameter names) and methods
that overlap. ANY overlaps with every method.

    GET  /users/{id}   +  GET  /users/{name}    → RouteConflictError
    GET  /users/{id}   +  POST /users/{id}      → fine
    ANY  /headers      +  POST /headers         → RouteConflictError

Conflicts are configuration errors and surface at registration time.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, List
import logging
import re

from .request import HTTPRequest
from .response import HTTPResponse, not_found, method_not_allowed


logger = logging.getLogger(__name__)


# Handler: takes a request, returns a response
Handler = Callable[[HTTPRequest], HTTPResponse]

PARAM_SEGMENT = re.compile(r"^\{([A-Za-z_][A-Za-z0-9_]*)\}$")

# Placeholder used in a route's shape for any parameter segment
_PARAM_SHAPE = "{}"


class RouteConflictError(ValueError):
    """A route pattern is malformed or collides with an existing route."""


@dataclass
class Route:
    """
    A registered route.

        Route(
            path="/name/{param}",    # pattern
            method=None,             # None = any method
            handler=<wrapped get_name>,
            _pattern=<compiled>,     # ^/name/(?P<param>[^/]+)$
            _param_names=["param"],
        )
    """

    path: str
    method: Optional[str]
    handler: Handler

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)
    _shape: tuple = field(default=(), repr=False)

    def allows(self, method: str) -> bool:
        """Whether this route accepts the method (exact, case-sensitive)."""
        return self.method is None or self.method == method


@dataclass
class RouteMatch:
    """A matched route plus the path parameters extracted from the path."""

    route: Route
    params: Dict[str, str]


class Router:
    """
    Route table with named path parameters.

    ==========================================================================
    USAGE
    ==========================================================================

        router = Router()

        router.add_route("/bad", get_bad, method="GET")
        router.add_route("/name/{param}", get_name)

        router.handle(request)   # dispatch, 404 / 405 when nothing fits

    ==========================================================================
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
    ) -> Route:
        """
        Register a route.

        Args:
            path: URL pattern, e.g. "/name/{param}".
            handler: Callable taking a request and returning a response.
            method: Method the route is restricted to (None for any).

        Returns:
            The registered Route.

        Raises:
            RouteConflictError: If the pattern is malformed or collides with
                                an already registered route.
        """
        pattern, param_names, shape = self._compile_pattern(path)

        route = Route(
            path=path,
            method=method,
            handler=handler,
            _pattern=pattern,
            _param_names=param_names,
            _shape=shape,
        )

        for existing in self._routes:
            if existing._shape != shape:
                continue
            if existing.method is None or route.method is None or existing.method == route.method:
                raise RouteConflictError(
                    f"Route {route.method or 'ANY'} {path} conflicts with "
                    f"{existing.method or 'ANY'} {existing.path}"
                )

        self._routes.append(route)
        logger.debug(f"Registered route {method or 'ANY'} {path}")
        return route

    def register(self, pattern: str, method: Optional[str], handler: Handler) -> Route:
        """Same as add_route(), with the (pattern, method, handler) order."""
        return self.add_route(pattern, handler, method=method)

    def _compile_pattern(self, path: str) -> tuple[re.Pattern, List[str], tuple]:
        """
        Compile a pattern into a regex.

        Input:  "/name/{param}"

            ""          → skipped (leading slash)
            "name"      → /name                (literal)
            "{param}"   → /(?P<param>[^/]+)    (parameter)

        Output: ^/name/(?P<param>[^/]+)$, ["param"], ("name", "{}")
        """
        if not path.startswith("/"):
            raise RouteConflictError(f"Route pattern must start with '/': {path!r}")

        param_names: List[str] = []
        shape: List[str] = []
        regex_parts = ["^"]

        segments = path.split("/")[1:]
        for segment in segments:
            regex_parts.append("/")

            if "{" in segment or "}" in segment:
                match = PARAM_SEGMENT.match(segment)
                if not match:
                    raise RouteConflictError(
                        f"Invalid parameter segment {segment!r} in {path!r}; "
                        f"expected '{{name}}'"
                    )
                param_name = match.group(1)
                if param_name in param_names:
                    raise RouteConflictError(
                        f"Duplicate parameter {param_name!r} in {path!r}"
                    )
                param_names.append(param_name)
                shape.append(_PARAM_SHAPE)
                regex_parts.append(f"(?P<{param_name}>[^/]+)")
            else:
                shape.append(segment)
                regex_parts.append(re.escape(segment))

        regex_parts.append("$")
        return re.compile("".join(regex_parts)), param_names, tuple(shape)

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    def resolve(self, path: str) -> Optional[RouteMatch]:
        """
        Find the first route whose pattern matches the path, regardless of
        method.

        Returns:
            RouteMatch, or None when no pattern matches (not found).
        """
        for route in self._routes:
            match = route._pattern.match(path)
            if match:
                return RouteMatch(route=route, params=match.groupdict())
        return None

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Find the first route matching both method and path.

        Order matters: first registered, first matched.
        """
        for route in self._routes:
            if not route.allows(method):
                continue
            match = route._pattern.match(path)
            if match:
                return RouteMatch(route=route, params=match.groupdict())
        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        """
        Methods accepted for a path, used for the Allow header of 405s.

        Returns an empty list when no route matches the path.
        """
        methods = set()
        for route in self._routes:
            if route._pattern.match(path) and route.method:
                methods.add(route.method)
        return sorted(methods)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Dispatch a request.

        1. Find the matching route
        2. Inject path parameters into request.path_params
        3. Call the handler

        Path matched but only for other methods → 405 with Allow header.
        Nothing matched → 404.
        """
        match = self.match(request.method, request.path)

        if match:
            request.path_params = match.params
            return match.route.handler(request)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)

        return not_found()

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def routes(self) -> List[Route]:
        """All registered routes in registration order."""
        return list(self._routes)

    def __len__(self) -> int:
        return len(self._routes)
