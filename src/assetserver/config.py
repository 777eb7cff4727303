"""
=============================================================================
CONFIGURATION
=============================================================================

Two dataclasses:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   ServeOptions   How ONE mounted responder answers requests.        │
    │                  Frozen; validated once at mount; shared by every   │
    │                  request that responder serves.                     │
    │                                                                      │
    │   ServerConfig   How the bundled asyncio host listens and logs.     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Both can be built in code, from the environment (``from_env``), or from
the command line (see ``__main__``). Whatever the source, ``validate()``
runs before the first request: configuration mistakes fail fast at
startup instead of on the first unlucky request.

=============================================================================
SERVE OPTIONS AT A GLANCE
=============================================================================

    ┌──────────────────┬──────────────┬─────────────────────────────────┐
    │ option           │ default      │ effect                          │
    ├──────────────────┼──────────────┼─────────────────────────────────┤
    │ index            │ index.html   │ file served for a directory     │
    │ max_age          │ 0            │ Cache-Control max-age seconds   │
    │ prefix           │ None         │ URL prefix stripped first       │
    │ fallthrough      │ True         │ miss → next handler, not 404    │
    │ etag             │ True         │ weak ETag + If-None-Match       │
    │ extensions       │ ()           │ "html" → try path + ".html"     │
    │ accept_ranges    │ True         │ Accept-Ranges: bytes            │
    │ cache_control    │ True         │ emit Cache-Control              │
    │ last_modified    │ True         │ emit Last-Modified              │
    │ start / end      │ None         │ byte-range overrides            │
    │ immutable        │ False        │ append ", immutable"            │
    │ dotfiles         │ False        │ serve "/.name" segments         │
    │ gzip / brotli    │ False        │ try pre-compressed siblings     │
    │ redirect         │ True         │ directory → index substitution  │
    │ set_headers      │ None         │ hook(headers, path, metadata)   │
    │ error_file       │ None         │ document served on total miss   │
    └──────────────────┴──────────────┴─────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from .errors import ConfigurationError


# hook(headers, path, metadata); mutate ``headers`` in place
SetHeadersHook = Callable[[Dict[str, str], str, Any], None]


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}")


@dataclass(frozen=True)
class ServeOptions:
    """
    Options for one mounted StaticFileHandler.

    Extensions may be given with or without the leading dot and as any
    sequence; they are stored as a tuple of bare extensions:

        >>> ServeOptions(extensions=[".html", "htm"]).extensions
        ('html', 'htm')
    """

    index: str = "index.html"
    max_age: int = 0
    prefix: Optional[str] = None
    fallthrough: bool = True
    etag: bool = True
    extensions: Tuple[str, ...] = ()
    accept_ranges: bool = True
    cache_control: bool = True
    last_modified: bool = True
    start: Optional[int] = None
    end: Optional[int] = None
    immutable: bool = False
    dotfiles: bool = False
    gzip: bool = False
    brotli: bool = False
    redirect: bool = True
    set_headers: Optional[SetHeadersHook] = None
    error_file: Optional[str] = None

    def __post_init__(self):
        # Frozen dataclass: normalize through object.__setattr__
        if isinstance(self.extensions, (list, tuple)):
            normalized = tuple(
                ext.lstrip(".") if isinstance(ext, str) else ext
                for ext in self.extensions
            )
            object.__setattr__(self, "extensions", normalized)

    @property
    def cache_control_value(self) -> str:
        """``public, max-age=N`` with ``, immutable`` when configured."""
        value = f"public, max-age={self.max_age}"
        if self.immutable:
            value += ", immutable"
        return value

    @classmethod
    def from_env(cls) -> "ServeOptions":
        """
        Build options from ``ASSET_*`` environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        ASSET_INDEX            index file (default: index.html)
        ASSET_MAX_AGE          Cache-Control max-age (default: 0)
        ASSET_PREFIX           URL prefix to strip
        ASSET_EXTENSIONS       comma list, e.g. "html,htm"
        ASSET_ERROR_FILE       document served on a total miss
        ASSET_START/ASSET_END  byte-range overrides
        ASSET_FALLTHROUGH, ASSET_ETAG, ASSET_ACCEPT_RANGES,
        ASSET_CACHE_CONTROL, ASSET_LAST_MODIFIED, ASSET_IMMUTABLE,
        ASSET_DOTFILES, ASSET_GZIP, ASSET_BROTLI, ASSET_REDIRECT
                               booleans: 1/true/yes/on

        =====================================================================
        """
        extensions = os.getenv("ASSET_EXTENSIONS", "")
        max_age = _env_int("ASSET_MAX_AGE")
        return cls(
            index=os.getenv("ASSET_INDEX", "index.html"),
            max_age=max_age if max_age is not None else 0,
            prefix=os.getenv("ASSET_PREFIX") or None,
            fallthrough=_env_bool("ASSET_FALLTHROUGH", True),
            etag=_env_bool("ASSET_ETAG", True),
            extensions=tuple(ext.strip() for ext in extensions.split(",") if ext.strip()),
            accept_ranges=_env_bool("ASSET_ACCEPT_RANGES", True),
            cache_control=_env_bool("ASSET_CACHE_CONTROL", True),
            last_modified=_env_bool("ASSET_LAST_MODIFIED", True),
            start=_env_int("ASSET_START"),
            end=_env_int("ASSET_END"),
            immutable=_env_bool("ASSET_IMMUTABLE", False),
            dotfiles=_env_bool("ASSET_DOTFILES", False),
            gzip=_env_bool("ASSET_GZIP", False),
            brotli=_env_bool("ASSET_BROTLI", False),
            redirect=_env_bool("ASSET_REDIRECT", True),
            error_file=os.getenv("ASSET_ERROR_FILE") or None,
        )

    def validate(self) -> None:
        """
        Fail fast on invalid option types or values.

        Raises:
            ConfigurationError: On the first problem found.
        """
        if self.set_headers is not None and not callable(self.set_headers):
            raise ConfigurationError("option set_headers must be callable")

        if not isinstance(self.index, str) or not self.index.strip("/"):
            raise ConfigurationError("option index must be a non-empty file name")

        if isinstance(self.max_age, bool) or not isinstance(self.max_age, int) or self.max_age < 0:
            raise ConfigurationError(f"option max_age must be an integer >= 0, got {self.max_age!r}")

        if not isinstance(self.extensions, tuple) or not all(
            isinstance(ext, str) and ext for ext in self.extensions
        ):
            raise ConfigurationError("option extensions must be a sequence of non-empty strings")

        for name in ("start", "end"):
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 0):
                raise ConfigurationError(f"option {name} must be an integer >= 0, got {value!r}")

        if self.start is not None and self.end is not None and self.start > self.end:
            raise ConfigurationError(f"option start ({self.start}) must not exceed end ({self.end})")

        if self.prefix is not None and not isinstance(self.prefix, str):
            raise ConfigurationError("option prefix must be a string")

        if self.error_file is not None and not isinstance(self.error_file, str):
            raise ConfigurationError("option error_file must be a string")


@dataclass
class ServerConfig:
    """
    Configuration for the bundled asyncio host server.

    Development:
        ServerConfig(host="127.0.0.1", port=8080, log_level="DEBUG")

    Containers:
        ServerConfig(host="0.0.0.0", port=80, log_format="json")
    """

    host: str = "127.0.0.1"
    """Address to bind; "0.0.0.0" for all interfaces."""

    port: int = 8080
    """Port to listen on; 0 lets the OS pick a free one."""

    backlog: int = 128
    """Maximum number of queued connections."""

    keep_alive: bool = True
    """Serve several requests per connection."""

    keep_alive_timeout: float = 5.0
    """Idle seconds before a keep-alive connection is closed."""

    max_head_size: int = 64 * 1024
    """Largest accepted request head (request line + headers) in bytes."""

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR."""

    log_format: str = "text"
    """Access log format: 'text' or 'json'."""

    server_name: str = "assetserver/1.0"
    """Value of the Server header."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        HTTP_HOST, HTTP_PORT, HTTP_KEEP_ALIVE_TIMEOUT, HTTP_LOG_LEVEL,
        HTTP_LOG_FORMAT.
        """
        port = _env_int("HTTP_PORT")
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=8080 if port is None else port,
            keep_alive_timeout=_env_float("HTTP_KEEP_ALIVE_TIMEOUT", 5.0),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        if not 0 <= self.port < 65536:
            raise ConfigurationError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.keep_alive_timeout <= 0:
            raise ConfigurationError("keep_alive_timeout must be > 0")

        if self.max_head_size < 1024:
            raise ConfigurationError("max_head_size must be >= 1024")

        if self.log_format not in ("text", "json"):
            raise ConfigurationError(f"log_format must be 'text' or 'json', got {self.log_format!r}")
