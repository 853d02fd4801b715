"""
=============================================================================
MUXING - A Minimal HTTP Request Dispatcher
=============================================================================

Named routes with {param} segments, a per-route wrapper chain and five
demonstration endpoints, served by a small thread-pooled HTTP/1.1 runtime.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    REQUEST FLOW                                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   socket → parser → Router.handle()                                 │
    │                          │                                          │
    │                          ▼                                          │
    │               AccessLogMiddleware     one CLF line per request     │
    │                          │                                          │
    │               RequestDumpMiddleware   full dump when verbose       │
    │                          │                                          │
    │               MethodGuard             405 on unexpected method     │
    │                          │                                          │
    │                       handler         get_name, get_data, ...      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE LAYOUT
=============================================================================

    muxing/
    ├── __main__.py       CLI entry point (python -m muxing)
    ├── app.py            create_app(), start(): the five routes
    ├── server.py         HTTPServer: connection loop and dispatch
    ├── config.py         ServerConfig, RequestContext
    ├── core/             socket server, connections, thread pool
    ├── http/             request parsing and dump, responses, router
    ├── middleware/       method guard, request dump, access log
    └── handlers/         demonstration endpoints

=============================================================================
"""

__version__ = "1.0.0"

from .app import create_app, start
from .config import ServerConfig, RequestContext
from .server import HTTPServer

__all__ = [
    "create_app",
    "start",
    "HTTPServer",
    "ServerConfig",
    "RequestContext",
    "__version__",
]
