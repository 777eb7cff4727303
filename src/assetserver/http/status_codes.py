"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes the asset responder and its host server can emit.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                 STATUS CODES USED BY THE RESPONDER                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   200 OK                      Full file body                        │
    │   206 Partial Content         Single byte range                     │
    │   304 Not Modified            Client cache is still fresh           │
    │   404 Not Found               Miss with fallthrough disabled        │
    │   405 Method Not Allowed      Anything but GET / HEAD               │
    │   416 Range Not Satisfiable   Range outside the file                │
    │   500 Internal Server Error   I/O failure other than "missing"      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The host server additionally uses 400, 413 and 505 for requests it cannot
parse. Other middleware may raise errors carrying any status in 100-599;
those pass through with the standard reason phrase.

=============================================================================
"""

from enum import IntEnum
from http.client import responses


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.PARTIAL_CONTENT == 206
        True
        >>> HTTPStatus.PARTIAL_CONTENT.phrase
        'Partial Content'
    """

    # 2xx
    OK = 200
    NO_CONTENT = 204
    PARTIAL_CONTENT = 206           # Range request fulfilled

    # 3xx
    NOT_MODIFIED = 304              # Cached version is still valid

    # 4xx
    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    PAYLOAD_TOO_LARGE = 413
    RANGE_NOT_SATISFIABLE = 416     # Range header outside the file

    # 5xx
    INTERNAL_SERVER_ERROR = 500
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return _STATUS_PHRASES.get(self) or responses.get(int(self), "Unknown")

    @property
    def allows_body(self) -> bool:
        """
        Whether a response with this status may carry a message body.

        RFC 7230 section 3.3.3: 1xx, 204 and 304 responses never have a
        body, so they must not advertise a Content-Length either.
        """
        return not (self < 200 or self in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED))

    @classmethod
    def _missing_(cls, value):
        """
        Any other code in 100-599 becomes an unnamed member, so a 401 or 503
        raised elsewhere keeps its number on the wire.
        """
        if isinstance(value, int) and 100 <= value <= 599:
            member = int.__new__(cls, value)
            member._name_ = f"STATUS_{value}"
            member._value_ = value
            return member
        return None


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.PARTIAL_CONTENT: "Partial Content",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.RANGE_NOT_SATISFIABLE: "Range Not Satisfiable",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}


def status_from_code(code: int) -> HTTPStatus:
    """
    Map an integer status to HTTPStatus.

    Codes outside 100-599 (or not integers at all) are reported as 500.
    """
    try:
        return HTTPStatus(code)
    except ValueError:
        return HTTPStatus.INTERNAL_SERVER_ERROR
