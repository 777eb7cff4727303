"""
=============================================================================
MIME TYPE LOOKUP
=============================================================================

Maps file extensions to Content-Type values for served assets.

The responder treats this as an injected pure function: anything with the
signature ``(path) -> Optional[str]`` can replace ``lookup_content_type``.
Returning None means "unknown", and the responder falls back to
``application/octet-stream``.

=============================================================================
PRE-COMPRESSED FILES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   File on disk        Served as                                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │   app.js              Content-Type: text/javascript                 │
    │   app.js.gz           Content-Type: text/javascript                 │
    │                       Content-Encoding: gzip                        │
    │   archive.tar.gz      Content-Type: application/gzip                │
    └─────────────────────────────────────────────────────────────────────┘

The lookup itself knows nothing about encodings. When the responder serves
``app.js.gz`` as an encoded representation of ``app.js`` it asks for the
type of ``app.js``; a plain request for ``archive.tar.gz`` is looked up
as-is.

=============================================================================
"""

from pathlib import PurePosixPath
from typing import Optional


MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".map": "application/json",      # Source maps
    ".webmanifest": "application/manifest+json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # Documents and archives
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".wasm": "application/wasm",
}

# "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"

_TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/manifest+json",
    "application/xml",
    "image/svg+xml",
}


def get_mime_type(path: str) -> Optional[str]:
    """
    Get the bare MIME type for a path, or None when the extension is unknown.

    Examples:
        >>> get_mime_type("css/site.css")
        'text/css'
        >>> get_mime_type("IMAGE.PNG")
        'image/png'
        >>> get_mime_type("LICENSE") is None
        True
    """
    return MIME_TYPES.get(PurePosixPath(path).suffix.lower())


def is_text_type(mime_type: str) -> bool:
    """Text types get a charset parameter."""
    return mime_type.startswith("text/") or mime_type in _TEXT_APPLICATION_TYPES


def lookup_content_type(path: str, charset: str = "utf-8") -> Optional[str]:
    """
    Full Content-Type header value for ``path``, or None if unknown.

    This is the default MIME collaborator of ``StaticFileHandler``.

    Examples:
        >>> lookup_content_type("index.html")
        'text/html; charset=utf-8'
        >>> lookup_content_type("logo.png")
        'image/png'
    """
    mime_type = get_mime_type(path)
    if mime_type is None:
        return None
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
