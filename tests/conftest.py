"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from muxing import HTTPServer, ServerConfig, create_app
from muxing.http import HTTPRequest, RequestParser


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /name/bob?lang=en&lang=fr HTTP/1.1\r\n"
        b"Host: localhost:8081\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/plain\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a text body."""
    body = b"hello\nworld"
    return (
        b"POST /data HTTP/1.1\r\n"
        b"Host: localhost:8081\r\n"
        b"Content-Type: text/plain\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
        + body
    )


@pytest.fixture
def make_request():
    """Build an HTTPRequest by parsing raw request bytes."""
    parser = RequestParser()

    def _make(
        method: str = "GET",
        target: str = "/",
        headers: Optional[dict] = None,
        body: bytes = b"",
    ) -> HTTPRequest:
        lines = [f"{method} {target} HTTP/1.1", "Host: localhost:8081"]
        for name, value in (headers or {}).items():
            lines.append(f"{name}: {value}")
        if body:
            lines.append(f"Content-Length: {len(body)}")
        raw = ("\r\n".join(lines) + "\r\n\r\n").encode("iso-8859-1") + body
        return parser.parse(raw, ("127.0.0.1", 54321))

    return _make


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


def send_raw(port: int, data: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes and read until the server closes the connection."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as s:
        s.sendall(data)
        chunks = []
        while True:
            chunk = s.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def split_response(raw: bytes):
    """Split a raw response into (status, headers, body); header names lower-cased."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("iso-8859-1").split("\r\n")
    status = int(lines[0].split(" ")[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return status, headers, body


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def request(self, method: str, target: str, headers: Optional[dict] = None, body: bytes = b""):
        """One request on a fresh connection; returns (status, headers, body)."""
        lines = [f"{method} {target} HTTP/1.1", f"Host: 127.0.0.1:{self.port}", "Connection: close"]
        for name, value in (headers or {}).items():
            lines.append(f"{name}: {value}")
        lines.append(f"Content-Length: {len(body)}")
        raw = ("\r\n".join(lines) + "\r\n\r\n").encode("iso-8859-1") + body
        return self.exchange(raw)

    def exchange(self, data: bytes):
        """Raw request bytes in, (status, headers, body) out."""
        return split_response(self.send_raw(data))

    def send_raw(self, data: bytes) -> bytes:
        """Raw bytes in, everything the server sent until it closed out."""
        return send_raw(self.port, data)

    def connect(self) -> socket.socket:
        return socket.create_connection(("127.0.0.1", self.port), timeout=5.0)

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """The demonstration app on an OS-assigned port."""
    test_srv = TestServer(create_app(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()
