"""
=============================================================================
MUXING CLI ENTRY POINT
=============================================================================

    python -m muxing                    # 0.0.0.0:8081, dumps on
    PORT=9000 python -m muxing          # custom port
    VERBOSE=0 python -m muxing          # no request dumps
    python -m muxing --log-level DEBUG  # override LOG_LEVEL

Listen address and verbosity come from the environment (see
muxing.config); the command line only carries process-level switches.

Startup failures are logged at CRITICAL and exit with status 1.

=============================================================================
"""

import argparse
import logging
import sys

from . import __version__
from .app import run
from .config import ServerConfig
from .http import RouteConflictError
from .server import setup_logging


logger = logging.getLogger("muxing")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="muxing",
        description="Minimal HTTP request dispatcher with demonstration routes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
  HOST        interface to bind (default: all interfaces)
  PORT        port to listen on (default: 8081)
  VERBOSE     dump every request (default: true)
  LOG_LEVEL   logging level (default: INFO)
        """
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (overrides LOG_LEVEL)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"muxing {__version__}"
    )

    args = parser.parse_args(argv)

    config = ServerConfig.from_env()
    if args.log_level:
        config.log_level = args.log_level

    setup_logging(config.log_level)

    try:
        config.validate()
    except ValueError as e:
        logger.critical(f"Invalid configuration: {e}")
        sys.exit(1)

    try:
        run(config)
    except RouteConflictError as e:
        logger.critical(f"Invalid route table: {e}")
        sys.exit(1)
    except (OSError, ValueError) as e:
        logger.critical(f"Could not start server on {config.host}:{config.port}: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
