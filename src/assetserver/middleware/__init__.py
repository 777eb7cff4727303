"""
=============================================================================
MIDDLEWARE
=============================================================================

Async middleware in the order the bundled server chains it:

    LoggingMiddleware     access log, X-Request-ID
    StaticFileHandler     (assetserver.handlers) the asset responder
    error responder       404 / error body when nothing answered

Every middleware is ``async __call__(exchange, next)``.

=============================================================================
"""

from .base import ErrorResponder, Middleware, MiddlewarePipeline, NextFunction
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "ErrorResponder",
    "Middleware",
    "MiddlewarePipeline",
    "NextFunction",
    "LoggingMiddleware",
    "RequestLog",
]
