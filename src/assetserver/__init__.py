"""
=============================================================================
ASSETSERVER
=============================================================================

Static asset responder for asyncio HTTP pipelines.

Maps GET/HEAD requests to files under a root directory and answers with
correctly negotiated responses: index substitution, pre-compressed
``.gz``/``.br`` representations, extension fallback, weak ETags,
Last-Modified, 304 revalidation, and single byte ranges (206/416).

    from assetserver import ServeOptions, StaticFileHandler

    static = StaticFileHandler("public", ServeOptions(max_age=3600, gzip=True))
    pipeline.use(static)                 # async middleware

one explicit file, whatever the URL:

    response = await send_file("public/index.html", request)

or stand-alone:

    python -m assetserver ./public --port 8080

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServeOptions, ServerConfig
from .errors import (
    AssetIOError,
    AssetNotFound,
    ConfigurationError,
    RangeNotSatisfiable,
    StaticFileError,
    default_error_responder,
)
from .handlers.static import Candidate, StaticFileHandler, fallback_candidates, send_file, serve_static
from .http.request import AssetRequest, Exchange
from .http.response import HTTPResponse
from .middleware import LoggingMiddleware, Middleware, MiddlewarePipeline
from .resolver import ParsedURL, parse_url, resolve
from .server import AssetServer
from .source import AssetMetadata, AssetSource, LocalFileSource

__all__ = [
    "__version__",
    "ServeOptions",
    "ServerConfig",
    "AssetIOError",
    "AssetNotFound",
    "ConfigurationError",
    "RangeNotSatisfiable",
    "StaticFileError",
    "default_error_responder",
    "Candidate",
    "StaticFileHandler",
    "fallback_candidates",
    "send_file",
    "serve_static",
    "AssetRequest",
    "Exchange",
    "HTTPResponse",
    "LoggingMiddleware",
    "Middleware",
    "MiddlewarePipeline",
    "ParsedURL",
    "parse_url",
    "resolve",
    "AssetServer",
    "AssetMetadata",
    "AssetSource",
    "LocalFileSource",
]
