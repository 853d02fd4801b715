"""
=============================================================================
TCP LISTENER
=============================================================================

Creates the listening socket and hands every accepted client to a callback.

    socket() → setsockopt(SO_REUSEADDR) → bind() → listen() → accept loop
                                            │
                                            └── OSError here is fatal for
                                                the process (see muxing.app)

accept() runs with a one second timeout so the loop notices shutdown()
without needing a wake-up connection. SIGINT and SIGTERM trigger shutdown()
when the server runs in the main thread.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    Usage:
        server = SocketServer(config)
        server.start(handle_connection)  # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready_event = threading.Event()
        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port). After bind() the port is the real one, which
        matters when the configured port is 0.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (self.config.host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(1.0)
        return sock

    def _setup_signals(self):
        """Install SIGINT/SIGTERM handlers (main thread only)."""
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and accept connections until shutdown().

        Args:
            connection_handler: Called with every accepted Connection.

        Raises:
            OSError: If the socket cannot be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)

        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop accepting connections. Safe to call more than once."""
        logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)
