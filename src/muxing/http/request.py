"""
=============================================================================
HTTP REQUEST MODEL, PARSER AND DUMP
=============================================================================

Turns raw HTTP/1.1 bytes into HTTPRequest objects and turns HTTPRequest
objects back into a human-readable wire-format dump.

=============================================================================
HEADERS ARE MULTI-VALUED
=============================================================================

A header may legally appear more than once. Instead of folding repeated
headers into one comma-joined string, every value is kept in arrival order:

    A: 3\\r\\n
    A: 10\\r\\n            →   headers == {"a": ["3", "10"]}
    B: 4\\r\\n                              "b": ["4"]}

Names are lower-cased at parse time (header names are case-insensitive,
RFC 7230). Handlers read the first value with get_header() or the full list
with get_header_values().

Header bytes are decoded as ISO-8859-1, so every byte the client sent maps
to exactly one character and survives a dump unchanged.

=============================================================================
BODY FRAMING
=============================================================================

    Content-Length: 5               body is the next 5 bytes
    Transfer-Encoding: chunked      body is a sequence of chunks:

        5\\r\\n                        size in hex (";ext" ignored)
        hello\\r\\n                    data
        0\\r\\n                        last chunk
        \\r\\n                          end (after optional trailers)

    neither                         no body

request.body always holds the decoded bytes. Any transfer coding other
than "chunked" is answered with 501; Content-Length together with
Transfer-Encoding is rejected with 400.

=============================================================================
REQUEST DUMP
=============================================================================

dump_request() renders a request the way it would appear on the wire:

    GET /get-echo?x=1 HTTP/1.1\\r\\n       ← request line, raw target
    Host: localhost:8081\\r\\n             ← Host always first
    Accept: */*\\r\\n                      ← remaining headers sorted by
    User-Agent: curl/8.5.0\\r\\n              canonical name, one line
    \\r\\n                                    per value
    <body bytes>

A chunked request is dumped with its body re-chunked as a single chunk, so
the dump still agrees with its Transfer-Encoding header.

The dump reads request.body without modifying it, so downstream handlers
still see the complete body.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, List, Tuple
from urllib.parse import urlsplit, unquote
import re

from .status_codes import HTTPStatus


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the status code to answer with:

        400 Bad Request                 - malformed request line, header or body
        413 Payload Too Large           - request exceeds the size limit
        501 Not Implemented             - transfer coding other than chunked
        505 HTTP Version Not Supported  - not HTTP/1.0 or HTTP/1.1
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class RequestDumpError(Exception):
    """Raised when a request cannot be serialized for logging or echoing."""


def canonical_header_name(name: str) -> str:
    """
    Canonical form of a header name: first letter and every letter after a
    hyphen upper-cased, the rest lower-cased.

        canonical_header_name("content-type")  # "Content-Type"
        canonical_header_name("a")             # "A"
        canonical_header_name("x-REQUEST-id")  # "X-Request-Id"
    """
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


_CHUNK_SIZE = re.compile(rb"^[0-9A-Fa-f]+$")


def decode_chunked(data: bytes, start: int = 0) -> Optional[Tuple[bytes, int]]:
    """
    Decode a chunked body that begins at data[start].

    Returns:
        (body, end) where end is the index just past the final CRLF, or
        None when data does not yet hold the complete body.

    Raises:
        HTTPParseError: If a chunk-size line or chunk terminator is malformed.
    """
    chunks = []
    pos = start

    while True:
        line_end = data.find(b"\r\n", pos)
        if line_end == -1:
            return None

        size_field = data[pos:line_end].split(b";", 1)[0].strip()
        if not _CHUNK_SIZE.match(size_field):
            raise HTTPParseError(f"Invalid chunk size: {size_field[:32]!r}")
        size = int(size_field, 16)

        if size == 0:
            # Trailers, if any, end with an empty line
            end = data.find(b"\r\n\r\n", line_end)
            if end == -1:
                return None
            return b"".join(chunks), end + 4

        data_start = line_end + 2
        data_end = data_start + size
        if len(data) < data_end + 2:
            return None
        if data[data_end:data_end + 2] != b"\r\n":
            raise HTTPParseError("Chunk data not terminated by CRLF")

        chunks.append(data[data_start:data_end])
        pos = data_end + 2


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         Request method exactly as sent ("GET", "POST", ...).
                        Never normalized: method checks are case-sensitive.

        path:           URL-decoded path without the query string.

        target:         The raw request-target from the request line,
                        query string included ("/get-echo?x=1").

        version:        "HTTP/1.1" or "HTTP/1.0".

        headers:        Lower-cased name → list of values in arrival order.

        body:           Decoded body bytes.

        path_params:    Filled in by the router: "/name/{param}" matched
                        against "/name/bob" → {"param": "bob"}.

        client_address: (ip, port) of the peer.

    =========================================================================
    """

    method: str
    path: str
    target: str = ""
    version: str = "HTTP/1.1"

    headers: Dict[str, List[str]] = field(default_factory=dict)
    body: bytes = b""

    path_params: Dict[str, str] = field(default_factory=dict)

    client_address: tuple[str, int] = ("", 0)

    def __post_init__(self):
        if not self.target:
            self.target = self.path

    @property
    def is_chunked(self) -> bool:
        """Whether the body arrived with Transfer-Encoding: chunked."""
        return "chunked" in _transfer_codings(self.headers)

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the connection should stay open after this request.

        HTTP/1.1 keeps alive unless "Connection: close";
        HTTP/1.0 closes unless "Connection: keep-alive".
        """
        connection = self.get_header("connection").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """
        First value of a header (case-insensitive lookup).

        Example:
            # A: 3
            # A: 10
            request.get_header("a")  # "3"
        """
        values = self.headers.get(name.lower())
        return values[0] if values else default

    def get_header_values(self, name: str) -> List[str]:
        """All values of a header in arrival order (empty list if absent)."""
        return list(self.headers.get(name.lower(), []))


def _transfer_codings(headers: Dict[str, List[str]]) -> List[str]:
    """Transfer-Encoding values as lower-cased codings, in order."""
    codings = []
    for value in headers.get("transfer-encoding", []):
        codings.extend(c.strip().lower() for c in value.split(",") if c.strip())
    return codings


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    ==========================================================================
    PARSER STEPS
    ==========================================================================

        1. Size check                 too large → HTTPParseError(413)
        2. Split at \\r\\n\\r\\n          missing  → HTTPParseError(400)
        3. Request line               METHOD SP TARGET SP VERSION
        4. Header lines               "Name: value", kept per value
        5. Body                       Content-Length bytes, or chunked

    ==========================================================================

    The method must be an RFC 7230 token but is otherwise unrestricted:
    deciding which methods a resource accepts is the router's and the
    method guard's job, not the parser's.
    """

    REQUEST_LINE_PATTERN = re.compile(r"^([!#$%&'*+.^_`|~0-9A-Za-z-]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:\s]+):[ \t]*(.*?)[ \t]*$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        """
        Args:
            max_request_size: Requests larger than this many bytes are
                              rejected with 413 Payload Too Large.
        """
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw request bytes.

        Args:
            data: Complete request bytes (headers and body).
            client_address: Peer (ip, port), kept for logging.

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=HTTPStatus.PAYLOAD_TOO_LARGE,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        # ISO-8859-1 maps every byte to one code point, so this cannot fail
        header_section = data[:header_end].decode("iso-8859-1")
        raw_body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, target, path, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        return HTTPRequest(
            method=method,
            path=path,
            target=target,
            version=version,
            headers=headers,
            body=self._parse_body(headers, raw_body),
            client_address=client_address,
        )

    def _parse_request_line(self, line: str):
        """
        Split "GET /name/bob?x=1 HTTP/1.1" into its parts.

        Returns:
            Tuple of (method, target, path, version).
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, target, version = match.groups()

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=HTTPStatus.HTTP_VERSION_NOT_SUPPORTED,
            )

        path = unquote(urlsplit(target).path) or "/"
        return method, target, path, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, List[str]]:
        """
        Parse header lines into lower-cased name → list of values.

        Obsolete line folding (a line starting with whitespace) is appended
        to the previous value. Lines without a colon are rejected.
        """
        headers: Dict[str, List[str]] = {}
        last_name: Optional[str] = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if last_name is None:
                    raise HTTPParseError(f"Invalid header continuation: {line!r}")
                headers[last_name][-1] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                raise HTTPParseError(f"Malformed header line: {line!r}")

            name, value = match.groups()
            last_name = name.lower()
            headers.setdefault(last_name, []).append(value)

        return headers

    def _parse_body(self, headers: Dict[str, List[str]], raw_body: bytes) -> bytes:
        """Decode the body according to Transfer-Encoding or Content-Length."""
        if "transfer-encoding" in headers:
            codings = _transfer_codings(headers)
            if codings != ["chunked"]:
                raise HTTPParseError(
                    f"Unsupported Transfer-Encoding: {', '.join(codings) or '(empty)'}",
                    status_code=HTTPStatus.NOT_IMPLEMENTED,
                )
            if "content-length" in headers:
                raise HTTPParseError("Content-Length not allowed with Transfer-Encoding")

            decoded = decode_chunked(raw_body)
            if decoded is None:
                raise HTTPParseError("Incomplete chunked body")
            return decoded[0]

        content_length = self._content_length(headers)
        if len(raw_body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(raw_body)}"
            )
        return raw_body[:content_length]

    @staticmethod
    def _content_length(headers: Dict[str, List[str]]) -> int:
        values = headers.get("content-length")
        if not values:
            return 0
        if len(set(values)) > 1:
            raise HTTPParseError("Conflicting Content-Length headers")
        try:
            length = int(values[0])
        except ValueError:
            raise HTTPParseError(f"Invalid Content-Length: {values[0]!r}")
        if length < 0:
            raise HTTPParseError(f"Invalid Content-Length: {values[0]!r}")
        return length


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024
) -> HTTPRequest:
    """Parse request bytes with a one-off RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)


def dump_request(request: HTTPRequest, body: bool = True) -> bytes:
    """
    Serialize a request to its wire representation.

    Args:
        request: The request to dump.
        body: Include the body after the blank line.

    Returns:
        The dump as bytes.

    Raises:
        RequestDumpError: If the request line or a header contains characters
                          that cannot travel in an HTTP/1.1 header section.
    """
    lines = [f"{request.method} {request.target} {request.version}"]

    host = request.get_header_values("host")
    for value in host:
        lines.append(f"Host: {value}")

    for name in sorted(request.headers, key=canonical_header_name):
        if name == "host":
            continue
        for value in request.headers[name]:
            lines.append(f"{canonical_header_name(name)}: {value}")

    head = "\r\n".join(lines) + "\r\n\r\n"
    try:
        encoded = head.encode("iso-8859-1")
    except UnicodeEncodeError as e:
        raise RequestDumpError(f"cannot dump request: {e}") from e

    if not body:
        return encoded
    if request.is_chunked:
        if request.body:
            encoded += f"{len(request.body):x}\r\n".encode("ascii") + request.body + b"\r\n"
        return encoded + b"0\r\n\r\n"
    return encoded + request.body
