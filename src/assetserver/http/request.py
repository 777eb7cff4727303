"""
=============================================================================
REQUEST MODEL AND HOST ADAPTER
=============================================================================

Two values flow through the pipeline for every request:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   AssetRequest   What the client asked for. Immutable.              │
    │                  method, url (path + query), lowercase headers      │
    │                                                                      │
    │   Exchange       The capability the host hands to middleware:       │
    │                  the request plus send_response(status, headers,    │
    │                  body). Built once per request by the host server   │
    │                  and passed down the chain; never patched.          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Any host (the bundled asyncio server, a test harness, an ASGI shim) only
has to build these two values; the responder never inspects what kind of
server it is running under.

RequestParser turns the raw request head read by the bundled server into
an AssetRequest.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Mapping, Optional
import re

from .response import HTTPResponse


class HTTPParseError(Exception):
    """
    Raised when an HTTP request head cannot be parsed.

    Carries the HTTP status code the host should answer with:

        400 Bad Request                 - Malformed request syntax
        413 Payload Too Large           - Head exceeds the size limit
        505 HTTP Version Not Supported  - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class AssetRequest:
    """
    An incoming request as seen by the responder.

    ``url`` is the request target exactly as received (``/a/b.js?v=3``);
    the resolver splits off the query. ``headers`` keys are lowercase.
    """

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    version: str = "HTTP/1.1"

    @classmethod
    def create(
        cls,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        version: str = "HTTP/1.1",
    ) -> "AssetRequest":
        """Build a request, normalizing header names to lowercase."""
        normalized = {name.lower(): value for name, value in (headers or {}).items()}
        return cls(method=method.upper(), url=url, headers=normalized, version=version)

    def get_header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    @property
    def is_head(self) -> bool:
        return self.method == "HEAD"

    @property
    def is_keep_alive(self) -> bool:
        """
        HTTP/1.1 keeps the connection open unless told to close;
        HTTP/1.0 closes unless told to keep it alive.
        """
        connection = self.get_header("connection").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"


# send_response(status, headers, body)
SendResponse = Callable[[int, Dict[str, str], bytes], Awaitable[None]]


@dataclass(frozen=True)
class Exchange:
    """
    Per-request adapter between the host server and the middleware chain.

    Middleware that needs to observe or decorate the outgoing response
    builds a new Exchange with ``dataclasses.replace`` rather than
    mutating this one.
    """

    request: AssetRequest
    send_response: SendResponse
    client_address: tuple[str, int] = ("", 0)

    async def send(self, response: HTTPResponse) -> None:
        await self.send_response(int(response.status), response.headers, response.body)


class RequestParser:
    """
    Parses a raw HTTP/1.x request head into an AssetRequest.

    The head is everything up to and including the blank line; the
    bundled server reads (and discards) any body separately using
    Content-Length.
    """

    VALID_METHODS = {
        "GET", "POST", "PUT", "DELETE", "PATCH",
        "HEAD", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_head_size: int = 64 * 1024):
        self.max_head_size = max_head_size

    def parse(self, data: bytes) -> AssetRequest:
        """
        Parse ``data`` (the request head, CRLF-terminated).

        Raises:
            HTTPParseError: If the head is malformed, too large, or uses an
                unsupported HTTP version.
        """
        if len(data) > self.max_head_size:
            raise HTTPParseError(
                f"Request head too large: {len(data)} bytes",
                status_code=413,
            )

        head = data.split(b"\r\n\r\n", 1)[0]
        try:
            text = head.decode("latin-1")
        except UnicodeDecodeError as e:
            raise HTTPParseError(f"Failed to decode request: {e}")

        lines = text.split("\r\n")
        if not lines or not lines[0]:
            raise HTTPParseError("Empty request")

        method, target, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        return AssetRequest(method=method, url=target, headers=headers, version=version)

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, target, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}")

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505,
            )

        # Absolute-form targets (proxies) carry scheme and authority
        if target.startswith(("http://", "https://")):
            rest = target.split("://", 1)[1]
            slash = rest.find("/")
            target = rest[slash:] if slash != -1 else "/"

        return method, target, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Lowercase header names; repeated headers are joined with ", ".
        Obsolete line folding is folded back onto the previous header.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # Lenient: skip malformed header lines

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers
