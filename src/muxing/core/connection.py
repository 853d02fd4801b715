"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps an accepted client socket with buffered, message-oriented reads.

TCP is a byte stream: one recv() may return half a request, or a request
and the start of the next one. read_request() buffers until it has the
header terminator and the whole body, returns exactly one request, and
keeps any surplus for the next call (keep-alive).

    ┌─────────────────────────────────────────────────────────────────┐
    │                  read_request()                                  │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   while no \\r\\n\\r\\n in buffer:   recv() → buffer                 │
    │   framing from the header section:                               │
    │       chunked         until the last chunk and trailers         │
    │       Content-Length  until that many body bytes                │
    │   split off one request, keep the rest                          │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

The returned bytes are still raw; RequestParser decodes the body.

=============================================================================
"""

import socket
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Tuple

from ..http.request import decode_chunked


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Lifecycle of a client connection."""

    CONNECTED = "connected"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class RequestTooLarge(Exception):
    """The buffered request exceeded the connection's size limit."""


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Peer (ip, port).
        buffer_size: Bytes per recv().
        timeout: Read timeout for the first request.
        keep_alive_timeout: Idle timeout between keep-alive requests.
        max_request_size: Upper bound on one buffered request.
    """

    socket: socket.socket
    address: tuple[str, int]
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.CONNECTED
    requests_handled: int = 0

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request.

        Returns:
            The request bytes, or None when the client closed the connection
            or an idle keep-alive connection timed out.

        Raises:
            TimeoutError: If the first request does not arrive in time.
            RequestTooLarge: If the request exceeds max_request_size.
            HTTPParseError: If a chunked body is malformed.
        """
        self.state = ConnectionState.READING

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._append(chunk)

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length, chunked = self._parse_framing(self._buffer[:header_end])

            if chunked:
                request_end = self._read_chunked(body_start)
            else:
                while len(self._buffer) - body_start < content_length:
                    chunk = self._recv()
                    if not chunk:
                        break
                    self._append(chunk)
                request_end = body_start + content_length

            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            return request_data

        except socket.timeout:
            if self.requests_handled > 0:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            self.socket.settimeout(self.timeout)

    def _read_chunked(self, body_start: int) -> int:
        """
        Buffer until the chunked body starting at body_start is complete.

        Returns the index just past the body. If the client stops sending
        early, everything buffered is returned and the parser reports the
        truncated body.
        """
        framed = decode_chunked(self._buffer, body_start)
        while framed is None:
            chunk = self._recv()
            if not chunk:
                return len(self._buffer)
            self._append(chunk)
            framed = decode_chunked(self._buffer, body_start)
        return framed[1]

    def _append(self, chunk: bytes) -> None:
        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLarge(f"Request too large: {len(self._buffer)} bytes")

    def _recv(self) -> bytes:
        """recv() that treats a reset connection as closed."""
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    @staticmethod
    def _parse_framing(headers: bytes) -> Tuple[int, bool]:
        """
        (Content-Length, chunked) from raw header bytes.

        Content-Length is 0 if absent or invalid. The parser validates both
        headers properly later; this is only used to know how many body
        bytes to wait for.
        """
        content_length = 0
        chunked = False
        for line in headers.decode("iso-8859-1").lower().split("\r\n"):
            name, _, value = line.partition(":")
            name = name.strip()
            if name == "transfer-encoding" and "chunked" in value:
                chunked = True
            elif name == "content-length":
                try:
                    content_length = max(0, int(value.strip()))
                except ValueError:
                    content_length = 0
        return content_length, chunked

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes with sendall().

        Returns:
            True on success, False if the connection was lost.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def set_keep_alive(self):
        """Mark the connection as waiting for its next request."""
        self.state = ConnectionState.KEEP_ALIVE

    def close(self):
        """
        Close the connection: half-close for writing, drain what the client
        still sends, then release the socket.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # peer already gone

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
