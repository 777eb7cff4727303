"""
=============================================================================
ERROR TAXONOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Exception             │ Status │ Meaning                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │ AssetNotFound         │  404   │ Missing file, directory without   │
    │                       │        │ index, denied dotfile, traversal  │
    │                       │        │ Recoverable: extension fallback,  │
    │                       │        │ then fallthrough or 404           │
    ├─────────────────────────────────────────────────────────────────────┤
    │ RangeNotSatisfiable   │  416   │ Range outside the file. Terminal, │
    │                       │        │ turned into a 416 response        │
    ├─────────────────────────────────────────────────────────────────────┤
    │ AssetIOError          │  500   │ Permission / device errors. Never │
    │                       │        │ reported as "not found"           │
    ├─────────────────────────────────────────────────────────────────────┤
    │ ConfigurationError    │   -    │ Bad options, raised at mount time │
    │                       │        │ before any request is served      │
    └─────────────────────────────────────────────────────────────────────┘

Per-request errors reach the pipeline through ``next(error)``; the error
responder renders them using ``status_code`` and the message.

=============================================================================
"""

import logging
from typing import Optional

from .http.request import Exchange
from .http.response import error_response
from .http.status_codes import HTTPStatus, status_from_code


logger = logging.getLogger(__name__)


class StaticFileError(Exception):
    """Base class for per-request responder errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class AssetNotFound(StaticFileError):
    status_code = 404


class RangeNotSatisfiable(StaticFileError):
    """Raised by range parsing; carries the size for ``Content-Range: bytes */size``."""

    status_code = 416

    def __init__(self, size: int):
        super().__init__(f"Range not satisfiable for {size} bytes")
        self.size = size


class AssetIOError(StaticFileError):
    """
    An OSError other than "does not exist" while touching an asset, or a
    symlink loop under the root.

    The original exception is kept on ``cause`` (and as ``__cause__``).
    """

    status_code = 500

    def __init__(self, message: str, cause: Exception):
        super().__init__(message)
        self.cause = cause


class ConfigurationError(ValueError):
    """Invalid ServeOptions or root, detected when the handler is mounted."""


async def default_error_responder(exchange: Exchange, error: Optional[BaseException] = None) -> None:
    """
    Render a miss or an error when the host supplied no error handler.

    - No error: 404 ``File or directory <url> not found``.
    - Error: its ``status_code`` (500 if it has none) and its message.
    """
    if error is None:
        response = error_response(
            HTTPStatus.NOT_FOUND,
            f"File or directory {exchange.request.url} not found",
        )
    else:
        status = status_from_code(getattr(error, "status_code", 500))
        if status >= 500:
            logger.error(f"{exchange.request.method} {exchange.request.url} failed: {error}")
        response = error_response(status, str(error) or "Something went wrong")

    await exchange.send(response)
