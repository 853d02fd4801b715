"""
=============================================================================
APPLICATION BOOTSTRAP
=============================================================================

Builds the server with the five demonstration routes:

    ┌────────────────┬───────────────┬───────────────┬─────────────┐
    │ Pattern        │ Router method │ Guard method  │ Handler     │
    ├────────────────┼───────────────┼───────────────┼─────────────┤
    │ /bad           │ GET           │ GET           │ get_bad     │
    │ /name/{param}  │ any           │ GET           │ get_name    │
    │ /data          │ POST          │ POST          │ get_data    │
    │ /headers       │ any           │ any           │ get_headers │
    │ /get-echo      │ any           │ GET           │ get_echo    │
    └────────────────┴───────────────┴───────────────┴─────────────┘

The router method is checked before any wrapper runs (405 with Allow);
the guard method is checked inside the chain, after the request dump.

    app = create_app(ServerConfig.from_env())
    app.run()

=============================================================================
"""

import logging
from typing import NamedTuple, Optional

from .config import ServerConfig
from .handlers import get_bad, get_name, get_data, get_headers, get_echo
from .http import Handler
from .middleware import logged_handler
from .server import HTTPServer, setup_logging


logger = logging.getLogger(__name__)


class Endpoint(NamedTuple):
    pattern: str
    route_method: Optional[str]
    guard_method: Optional[str]
    handler: Handler


ENDPOINTS = (
    Endpoint("/bad", "GET", "GET", get_bad),
    Endpoint("/name/{param}", None, "GET", get_name),
    Endpoint("/data", "POST", "POST", get_data),
    Endpoint("/headers", None, None, get_headers),
    Endpoint("/get-echo", None, "GET", get_echo),
)


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Create the server and register every endpoint.

    Each handler is wrapped once, here, with the access log, the request
    dump and the method guard, in that order.

    Raises:
        ValueError: If the configuration is invalid.
        RouteConflictError: If two endpoints collide.
    """
    config = config or ServerConfig()
    server = HTTPServer(config)
    context = config.request_context()

    for endpoint in ENDPOINTS:
        server.add_route(
            endpoint.pattern,
            logged_handler(context, endpoint.guard_method, endpoint.handler),
            method=endpoint.route_method,
        )

    return server


def log_routes(server: HTTPServer) -> None:
    """Log the registered routes, one per line."""
    for route in server.router.routes():
        logger.info(f"  {route.method or 'ANY':<6} {route.path}")


def start(host: str = "", port: int = 8081, verbose: bool = True) -> None:
    """
    Build the application and serve until interrupted.

    Raises:
        OSError: If the listener cannot bind host:port.
    """
    config = ServerConfig(host=host, port=port, verbose=verbose)
    run(config)


def run(config: ServerConfig) -> None:
    """Serve the application with an existing configuration."""
    setup_logging(config.log_level)
    server = create_app(config)
    logger.info(f"Starting API server on {config.host}:{config.port}")
    log_routes(server)
    server.run()
