"""
=============================================================================
HTTP RESPONSE
=============================================================================

The value the asset responder produces and the host server serializes.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     PARTIAL CONTENT RESPONSE                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 206 Partial Content\r\n         ← status line           │
    │    Content-Type: video/mp4\r\n                                      │
    │    Accept-Ranges: bytes\r\n                                         │
    │    Content-Range: bytes 0-1023/52428800\r\n                         │
    │    Content-Length: 1024\r\n                 ← end - start + 1       │
    │    ETag: W/"52428800-1718445600000"\r\n                             │
    │    \r\n                                     ← header/body separator │
    │    <1024 bytes>                                                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Headers are kept in an ordinary dict, which preserves insertion order, so
the serialized header block follows the order the responder built it in.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    An HTTP response: status, ordered headers, body bytes.

    Use ResponseBuilder for fluent construction.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. ``HTTP/1.1 206 Partial Content``"""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def to_bytes(self, server_name: str = "assetserver", include_body: bool = True) -> bytes:
        """
        Serialize for ``writer.write()``.

        =====================================================================
        CONTENT-LENGTH RULES
        =====================================================================

        - An explicit Content-Length set by the responder is kept as-is.
          For HEAD responses this is the size the GET body would have.
        - Otherwise it is computed from the body, except for statuses
          that cannot carry a body (204, 304), which get none at all.

        ``include_body=False`` is used for HEAD: identical header block,
        no body bytes.

        =====================================================================
        """
        response_headers = dict(self.headers)
        present = {name.lower() for name in response_headers}

        if self.status.allows_body and "content-length" not in present:
            response_headers["Content-Length"] = str(len(self.body))

        if "date" not in present:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "server" not in present:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"

        if not include_body or not self.status.allows_body:
            return header_bytes
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.PARTIAL_CONTENT)
            .header("Content-Range", "bytes 0-99/1000")
            .text("partial")
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231 IMF-fixdate, the RFC 1123
    format).

    Example: ``Wed, 01 Jan 2026 12:00:00 GMT``

    HTTP dates are always GMT; aware datetimes are converted to UTC first.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def error_response(status: HTTPStatus, message: str) -> HTTPResponse:
    """Plain-text error response."""
    return ResponseBuilder().status(status).text(message).build()


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """
    405 with the Allow header (RFC 7231 requirement) and an empty body.
    """
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .header("Content-Length", "0")
        .build())
