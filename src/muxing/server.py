"""
=============================================================================
HTTP SERVER
=============================================================================

HTTPServer wires the runtime together:

    ┌──────────────┐   Connection   ┌────────────┐
    │ SocketServer │ ─────────────▶ │ ThreadPool │
    └──────────────┘                └─────┬──────┘
                                          │ _process_connection (worker)
                                          ▼
                      read_request() → RequestParser.parse()
                                          │
                                          ▼
                               Router.handle(request)
                                          │   (per-route chains built by
                                          │    muxing.middleware.chain)
                                          ▼
                           response.to_bytes() → sendall()
                                          │
                         keep-alive? ─────┴──── loop / close

Anything a handler raises is logged with its traceback and answered with
500; a broken request never brings the process down.

=============================================================================
"""

import logging
import sys
from typing import Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, ThreadPool, RequestTooLarge
from .http import (
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    HTTPParseError,
    RequestParser,
    ResponseBuilder,
    Router,
    Handler,
    error,
)


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger to write to stdout.

    basicConfig() is a no-op once handlers exist, so calling this again
    only adjusts the level.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stdout,
    )
    logging.getLogger("muxing").setLevel(numeric_level)


class HTTPServer:
    """
    Thread-pooled HTTP/1.1 server dispatching through a Router.

    Usage:
        server = HTTPServer(ServerConfig(port=8081))
        server.add_route("/name/{param}", get_name, method="GET")
        server.run()  # blocks until SIGINT/SIGTERM or shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._router = Router()
        self._running = False

    # =========================================================================
    # ROUTES
    # =========================================================================

    @property
    def router(self) -> Router:
        return self._router

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
    ):
        """Register a route on the server's router. See Router.add_route()."""
        return self._router.add_route(path, handler, method=method)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening."""
        return self._socket_server.address

    def run(self):
        """
        Start serving (blocking).

        Raises:
            OSError: If the listening socket cannot be bound.
        """
        setup_logging(self.config.log_level)

        self._running = True
        self._thread_pool.start()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listener accepts connections."""
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Ask a running server to stop; run() returns shortly after."""
        self._socket_server.shutdown()

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=self.config.keep_alive_timeout + 1)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTIONS
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Hand an accepted connection to the pool (accept thread)."""
        submitted = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
            block=True,
            queue_timeout=1.0,
        )

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        Serve every request on a connection (worker thread).

        Loop: read → parse → dispatch → send, until the client closes, asks
        for Connection: close, or sends something unparseable.
        """
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except RequestTooLarge as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break
                except HTTPParseError as e:
                    logger.info(f"[{conn.id}] Bad framing from {conn.client_ip}: {e}")
                    self._send_error(conn, e.status_code, str(e))
                    break

                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    logger.info(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                    self._send_error(conn, e.status_code, str(e))
                    break

                conn.state = ConnectionState.PROCESSING
                response = self.dispatch(request)

                keep_alive = request.is_keep_alive and self.config.keep_alive
                if keep_alive:
                    response.headers.setdefault("Connection", "keep-alive")
                else:
                    response.headers["Connection"] = "close"

                if not conn.send_response(response.to_bytes(self.config.server_name)):
                    break

                if not keep_alive:
                    break

                conn.set_keep_alive()

    def dispatch(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a parsed request and return the response.

        Exceptions escaping the handler chain become 500.
        """
        try:
            return self._router.handle(request)
        except Exception as e:
            logger.exception(f"Unhandled error serving {request.method} {request.target}: {e}")
            return error(HTTPStatus.INTERNAL_SERVER_ERROR)

    def _send_error(self, conn: Connection, status: int, message: str):
        """Plain-text error for failures before dispatch; closes afterwards."""
        response = (ResponseBuilder()
            .status(status)
            .text(message + "\n")
            .header("X-Content-Type-Options", "nosniff")
            .close_connection()
            .build())

        conn.send_response(response.to_bytes(self.config.server_name))
