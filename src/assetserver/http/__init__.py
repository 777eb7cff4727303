"""
HTTP primitives: request model, response builder, status codes, MIME types.

Conditional and range helpers live in ``assetserver.http.conditional``.
"""

from .mime_types import DEFAULT_MIME_TYPE, lookup_content_type
from .request import AssetRequest, Exchange, HTTPParseError, RequestParser
from .response import HTTPResponse, ResponseBuilder, error_response, format_http_date
from .status_codes import HTTPStatus

__all__ = [
    "DEFAULT_MIME_TYPE",
    "lookup_content_type",
    "AssetRequest",
    "Exchange",
    "HTTPParseError",
    "RequestParser",
    "HTTPResponse",
    "ResponseBuilder",
    "error_response",
    "format_http_date",
    "HTTPStatus",
]
