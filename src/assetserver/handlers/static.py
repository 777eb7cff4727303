"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Serves files under a root directory as an async middleware step.

=============================================================================
FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   GET /static/app.js          Accept-Encoding: gzip                 │
    │        │                                                             │
    │        ▼                                                             │
    │   resolve()          prefix "/static" stripped → key "app.js"       │
    │        │             (prefix mismatch → next(), untouched)          │
    │        ▼                                                             │
    │   method check       GET/HEAD only                                  │
    │        │                                                             │
    │        ▼                                                             │
    │   respond("app.js")  dotfile? stat? directory → index?              │
    │        │             headers, 416, 304, body                        │
    │        │                                                             │
    │        │ not found                                                   │
    │        ▼                                                             │
    │   fallback chain     app.js.gz (gzip) → app.js → app.js.html ...    │
    │        │             first existing candidate → respond() again     │
    │        │                                                             │
    │        │ still nothing                                               │
    │        ▼                                                             │
    │   error_file?  ──yes──► 404 with the error document                 │
    │        │ no                                                          │
    │        ▼                                                             │
    │   fallthrough ? next() : next(AssetNotFound)                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
RESPONSE PRECEDENCE
=============================================================================

    dotfile  →  stat  →  directory/index  →  416  →  304  →  body

Once a 416 or 304 is decided, nothing else is read from disk.

=============================================================================
USAGE
=============================================================================

    static = StaticFileHandler(
        "/var/www/site",
        ServeOptions(prefix="/static", max_age=86400, gzip=True),
    )
    pipeline.use(LoggingMiddleware(), static)

=============================================================================
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, NamedTuple, Optional
import logging
import os
import re

from ..config import ServeOptions
from ..errors import AssetNotFound, ConfigurationError, RangeNotSatisfiable, StaticFileError
from ..http.conditional import NOT_MODIFIED_HEADERS, is_fresh, make_etag, parse_range
from ..http.mime_types import DEFAULT_MIME_TYPE, lookup_content_type
from ..http.request import AssetRequest, Exchange
from ..http.response import HTTPResponse, format_http_date, method_not_allowed
from ..http.status_codes import HTTPStatus
from ..middleware.base import Middleware, NextFunction
from ..resolver import resolve
from ..source import AssetMetadata, AssetSource, LocalFileSource


logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "HEAD")

ENCODING_SUFFIXES = {"gzip": ".gz", "br": ".br"}

BROTLI_PATTERN = re.compile(r"br|brotli", re.IGNORECASE)


class Candidate(NamedTuple):
    """A representation to try: a key and the encoding its bytes carry."""

    key: str
    encoding: Optional[str] = None


def is_dotfile(key: str) -> bool:
    """True if any segment of ``key`` starts with a dot."""
    return any(segment.startswith(".") for segment in key.split("/"))


def _has_header(headers: Dict[str, str], name: str) -> bool:
    lowered = name.lower()
    return any(key.lower() == lowered for key in headers)


def _set_header(headers: Dict[str, str], name: str, value: str) -> None:
    """Set ``name``, dropping any spelling of it the hook left behind."""
    lowered = name.lower()
    for key in [key for key in headers if key.lower() == lowered]:
        del headers[key]
    headers[name] = value


def fallback_candidates(key: str, request: AssetRequest, options: ServeOptions) -> List[Candidate]:
    """
    Ordered representations to try after ``key`` itself was not found.

    =====================================================================
    PRIORITY
    =====================================================================

    With ``extensions=("html",)``, gzip and brotli enabled, and a client
    sending ``Accept-Encoding: gzip, br`` a request for ``about`` tries:

        about.html.gz   gzip        (a) pre-compressed, gzip
        about.gz        gzip
        about.html.br   br          (b) pre-compressed, brotli
        about.br        br
        about           -           (c) the key itself
        about.html      -           (d) plain extensions

    =====================================================================
    """
    accept_encoding = request.get_header("accept-encoding")
    suffixes = []

    if options.gzip and "gzip" in accept_encoding:
        suffixes.extend((f"{ext}.gz", "gzip") for ext in options.extensions)
        suffixes.append(("gz", "gzip"))

    if options.brotli and BROTLI_PATTERN.search(accept_encoding):
        suffixes.extend((f"{ext}.br", "br") for ext in options.extensions)
        suffixes.append(("br", "br"))

    suffixes.append(("", None))
    suffixes.extend((ext, None) for ext in options.extensions)

    return [
        Candidate(f"{key}.{suffix}" if suffix else key, encoding)
        for suffix, encoding in suffixes
    ]


class StaticFileHandler(Middleware):
    """
    Async middleware serving files from an AssetSource.

    =========================================================================
    FEATURES
    =========================================================================

    - Directory index substitution (``index.html``)
    - Pre-compressed ``.gz`` / ``.br`` siblings with Content-Encoding
    - Extension fallback (``/about`` → ``about.html``)
    - Weak ETags, Last-Modified, If-None-Match / If-Modified-Since → 304
    - Single byte ranges → 206 / 416
    - Dotfile denial, traversal rejection
    - Fallthrough to the next middleware on a miss

    =========================================================================
    """

    def __init__(
        self,
        root: str = ".",
        options: Optional[ServeOptions] = None,
        source: Optional[AssetSource] = None,
        content_type: Callable[[str], Optional[str]] = lookup_content_type,
    ):
        """
        Args:
            root: Directory to serve. Ignored when ``source`` is given.
            options: Serving options; validated here, once.
            source: Alternative AssetSource (defaults to LocalFileSource).
            content_type: MIME lookup, ``(path) -> Optional[str]``.

        Raises:
            ConfigurationError: Invalid options, or ``root`` is not a
                directory.
        """
        self.options = options or ServeOptions()
        self.options.validate()

        if source is None:
            if not isinstance(root, str):
                raise ConfigurationError("root path must be a string")
            local = LocalFileSource(root)
            if not local.is_directory():
                raise ConfigurationError(f"Static root directory does not exist: {root}")
            source = local

        self.source = source
        self.content_type = content_type

    # =========================================================================
    # MIDDLEWARE ENTRY POINT
    # =========================================================================

    async def __call__(self, exchange: Exchange, next: NextFunction) -> None:
        try:
            response = await self.handle(exchange.request)
        except StaticFileError as e:
            await next(e)
            return

        if response is None:
            await next()
            return

        await exchange.send(response)

    async def handle(self, request: AssetRequest) -> Optional[HTTPResponse]:
        """
        Answer ``request``, or return None to pass it to the next handler.

        Raises:
            AssetNotFound: Nothing to serve and ``fallthrough`` is off.
            AssetIOError: Always propagated, whatever ``fallthrough`` says.
        """
        miss: Optional[AssetNotFound] = None
        try:
            key = resolve(request.url, self.options)
        except AssetNotFound as e:
            key, miss = "", e

        if key is None:
            return None

        if request.method not in ALLOWED_METHODS:
            if self.options.fallthrough:
                return None
            return method_not_allowed(list(ALLOWED_METHODS))

        try:
            if miss is not None:
                raise miss
            return await self._serve(key, request)
        except AssetNotFound as e:
            logger.debug(f"Miss: {request.method} {request.url} ({e})")
            if self.options.fallthrough:
                return None
            raise

    async def _serve(self, key: str, request: AssetRequest) -> HTTPResponse:
        try:
            return await self.respond(key, request)
        except AssetNotFound as miss:
            for candidate in fallback_candidates(key, request, self.options):
                if not self.options.dotfiles and is_dotfile(candidate.key):
                    continue
                metadata = await self.source.stat(candidate.key)
                if await self._servable(candidate.key, metadata):
                    # The first hit is final, whatever respond() decides
                    return await self.respond(candidate.key, request, candidate.encoding, metadata)

            if self.options.error_file:
                response = await self._error_document(request)
                if response is not None:
                    return response
            raise miss

    async def _servable(self, key: str, metadata: AssetMetadata) -> bool:
        """A file, or a directory whose index file exists."""
        if not metadata.exists:
            return False
        if not metadata.is_directory:
            return True
        if not self.options.redirect:
            return False
        index = await self.source.stat(self._index_key(key))
        return index.exists and not index.is_directory

    def _index_key(self, key: str) -> str:
        index = self.options.index.strip("/")
        return f"{key.rstrip('/')}/{index}" if key else index

    # =========================================================================
    # THE RESPONDER
    # =========================================================================

    async def respond(
        self,
        key: str,
        request: AssetRequest,
        encoding: Optional[str] = None,
        metadata: Optional[AssetMetadata] = None,
    ) -> HTTPResponse:
        """
        Build the response for one candidate key.

        Args:
            key: Root-relative key from the resolver or the fallback chain.
            request: The request being answered.
            encoding: ``gzip``/``br`` when ``key`` is a pre-compressed sibling.
            metadata: Stat result already obtained by the caller, if any.

        Raises:
            AssetNotFound: Denied dotfile, absent, or directory without index.
            AssetIOError: The source failed for any other reason.
        """
        now = datetime.now(timezone.utc)
        options = self.options
        not_found = AssetNotFound(f"File or directory {request.url} not found")

        # ─────────────────────────────────────────────────────────────────
        # DOTFILES (no I/O before this)
        # ─────────────────────────────────────────────────────────────────
        if not options.dotfiles and is_dotfile(key):
            raise not_found

        if metadata is None:
            metadata = await self.source.stat(key)
        if not metadata.exists:
            raise not_found

        # ─────────────────────────────────────────────────────────────────
        # DIRECTORY → INDEX
        # ─────────────────────────────────────────────────────────────────
        if metadata.is_directory:
            if not options.redirect:
                raise not_found
            key = self._index_key(key)
            metadata = await self.source.stat(key)
            if not metadata.exists or metadata.is_directory:
                raise not_found

        headers: Dict[str, str] = {}
        if options.set_headers is not None:
            options.set_headers(headers, key, metadata)

        # ─────────────────────────────────────────────────────────────────
        # REPRESENTATION
        # ─────────────────────────────────────────────────────────────────
        type_key = key
        suffix = ENCODING_SUFFIXES.get(encoding or "")
        if suffix and key.endswith(suffix):
            type_key = key[:-len(suffix)]

        if not _has_header(headers, "Content-Type"):
            _set_header(headers, "Content-Type", self.content_type(type_key) or DEFAULT_MIME_TYPE)
        if encoding:
            _set_header(headers, "Content-Encoding", encoding)
        if options.gzip or options.brotli:
            _set_header(headers, "Vary", "Accept-Encoding")

        modified_at = metadata.modified_at or now
        size = metadata.size

        if options.last_modified:
            _set_header(headers, "Last-Modified", format_http_date(modified_at))
        if options.accept_ranges and not _has_header(headers, "Accept-Ranges"):
            _set_header(headers, "Accept-Ranges", "bytes")

        # ─────────────────────────────────────────────────────────────────
        # RANGE
        # ─────────────────────────────────────────────────────────────────
        status = HTTPStatus.OK
        window = None
        range_header = request.get_header("range")
        if range_header:
            try:
                window = parse_range(range_header, size, options.start, options.end)
            except RangeNotSatisfiable:
                _set_header(headers, "Content-Range", f"bytes */{size}")
                _set_header(headers, "Content-Length", "0")
                return HTTPResponse(status=HTTPStatus.RANGE_NOT_SATISFIABLE, headers=headers)

        if window is not None:
            start, end = window
            status = HTTPStatus.PARTIAL_CONTENT
            _set_header(headers, "Content-Range", f"bytes {start}-{end}/{size}")
            _set_header(headers, "Content-Length", str(end - start + 1))
        else:
            start, end = 0, None
            _set_header(headers, "Content-Length", str(size))

        # ─────────────────────────────────────────────────────────────────
        # CACHING AND VALIDATION
        # ─────────────────────────────────────────────────────────────────
        if options.cache_control:
            _set_header(headers, "Cache-Control", options.cache_control_value)

        if options.etag:
            _set_header(headers, "ETag", make_etag(size, modified_at))

        if (options.etag or options.last_modified) and is_fresh(request.headers, headers):
            allowed = {name.lower() for name in NOT_MODIFIED_HEADERS}
            kept = {name: value for name, value in headers.items() if name.lower() in allowed}
            return HTTPResponse(status=HTTPStatus.NOT_MODIFIED, headers=kept)

        # ─────────────────────────────────────────────────────────────────
        # BODY
        # ─────────────────────────────────────────────────────────────────
        if request.is_head:
            return HTTPResponse(status=status, headers=headers)

        body = await self.source.read(key, start, end)
        return HTTPResponse(status=status, headers=headers, body=body)

    async def _error_document(self, request: AssetRequest) -> Optional[HTTPResponse]:
        """
        Serve ``error_file`` with status 404, or None if it is missing.

        No ranges, no validators: this is a fallback page, not the asset.
        """
        key = "/".join(
            segment for segment in self.options.error_file.split("/")
            if segment not in ("", ".", "..")
        )
        metadata = await self.source.stat(key)
        if not metadata.exists or metadata.is_directory:
            logger.warning(f"Error document not found: {self.options.error_file}")
            return None

        headers = {
            "Content-Type": self.content_type(key) or DEFAULT_MIME_TYPE,
            "Content-Length": str(metadata.size),
        }
        body = b"" if request.is_head else await self.source.read(key)
        return HTTPResponse(status=HTTPStatus.NOT_FOUND, headers=headers, body=body)


def serve_static(root: str, **options) -> StaticFileHandler:
    """
    Shorthand for ``StaticFileHandler(root, ServeOptions(**options))``.

        pipeline.add(serve_static("public", max_age=3600, extensions=["html"]))
    """
    return StaticFileHandler(root, ServeOptions(**options))


async def send_file(
    path: str,
    request: AssetRequest,
    options: Optional[ServeOptions] = None,
) -> Optional[HTTPResponse]:
    """
    Serve one explicit file, whatever the request URL says.

    No prefix, no URL resolution, no fallback chain, no error document:
    ``path`` is a filesystem path (a directory gets its index file) and
    the rest is the normal responder, so ranges, validators, 304 and the
    set_headers hook all apply. Typical use is a single-page app shell:

        class AppShell(Middleware):
            async def __call__(self, exchange, next):
                response = await send_file("public/index.html", exchange.request)
                if response is None:
                    await next()
                else:
                    await exchange.send(response)

    Returns None where the mounted handler would fall through (method other
    than GET/HEAD, missing file) and ``options.fallthrough`` is on.

    Raises:
        AssetNotFound: Missing file with ``fallthrough`` off.
        AssetIOError: Always propagated.
        ConfigurationError: Invalid options.
    """
    target = Path(os.path.abspath(path))
    handler = StaticFileHandler(
        options=options or ServeOptions(),
        source=LocalFileSource(str(target.parent)),
    )

    if request.method not in ALLOWED_METHODS:
        if handler.options.fallthrough:
            return None
        return method_not_allowed(list(ALLOWED_METHODS))

    try:
        return await handler.respond(target.name, request)
    except AssetNotFound as e:
        logger.debug(f"send_file miss: {path} ({e})")
        if handler.options.fallthrough:
            return None
        raise
