"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Two configuration values are built at startup and never change afterwards:

    ServerConfig     where to listen, how many workers, how to log
    RequestContext   what the request wrappers need (verbosity), derived
                     from ServerConfig and handed to every wrapped handler

=============================================================================
ENVIRONMENT
=============================================================================

    HOST        Interface to bind ("" = all interfaces, the default)
    PORT        Port to listen on; 8081 when unset or not an integer
    VERBOSE     Dump every request (default on; 0/false/no/off disable)
    LOG_LEVEL   DEBUG, INFO, WARNING, ERROR (default INFO)

    $ PORT=9000 python -m muxing

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_PORT = 8081

_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class RequestContext:
    """
    Process-wide, read-only state shared by all wrapped handlers.

    Built once at bootstrap and passed explicitly to the wrappers, so a
    wrapper chain can be tested in isolation with any context.
    """

    verbose: bool = True


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK     host, port, backlog, buffer_size, timeout
    HTTP        keep_alive, keep_alive_timeout, max_request_size
    THREADING   min_workers, max_workers, queue_size
    LOGGING     log_level, verbose

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = ""
    """Interface to bind. "" binds every interface."""

    port: int = DEFAULT_PORT
    """Port to listen on. 0 lets the OS pick a free port."""

    backlog: int = 128
    """Connections the OS queues before refusing new ones."""

    buffer_size: int = 8192
    """Bytes read per recv() call."""

    timeout: Optional[float] = 30.0
    """Socket timeout in seconds while reading a request."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024  # 10 MB

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 100

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"

    verbose: bool = True
    """Dump every inbound request to the log before handling it."""

    server_name: Optional[str] = None
    """Value of the Server response header; omitted when None."""

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "ServerConfig":
        """
        Create configuration from environment variables.

        PORT falls back to 8081 when it is missing or not an integer;
        a numeric but out-of-range PORT is kept so validate() rejects it.

        Args:
            environ: Mapping to read instead of os.environ (for tests).
        """
        env = os.environ if environ is None else environ

        try:
            port = int(env.get("PORT", ""))
        except ValueError:
            port = DEFAULT_PORT

        return cls(
            host=env.get("HOST", ""),
            port=port,
            verbose=env.get("VERBOSE", "true").strip().lower() not in _FALSE_VALUES,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )

    def request_context(self) -> RequestContext:
        """The RequestContext shared by every wrapped handler."""
        return RequestContext(verbose=self.verbose)

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup; an invalid configuration is fatal.

        Raises:
            ValueError: Describing the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {self.log_level}")
