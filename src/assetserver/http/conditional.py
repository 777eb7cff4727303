"""
=============================================================================
CONDITIONAL AND RANGE REQUESTS
=============================================================================

Validators let a client skip downloading something it already has;
ranges let it download only part of it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONDITIONAL GET (REVALIDATION)                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   First visit:                                                      │
    │     GET /app.js                                                     │
    │     ← 200 OK                                                        │
    │       ETag: W/"5120-1718445600000"                                  │
    │       Last-Modified: Sat, 15 Jun 2024 10:00:00 GMT                  │
    │                                                                      │
    │   Revisit:                                                          │
    │     GET /app.js                                                     │
    │     If-None-Match: W/"5120-1718445600000"                           │
    │     ← 304 Not Modified          (no body, cache copy reused)        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

ETags here are WEAK (``W/`` prefix): they are derived from size and
modification time, not from the content bytes, so two byte-different
files could in theory share one. Weak comparison is all a GET needs.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         BYTE RANGES                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Range: bytes=0-99      first 100 bytes     start=0,    end=99     │
    │   Range: bytes=100-      from byte 100 on    start=100,  end=size-1 │
    │   Range: bytes=-100      last 100 bytes      start=size-100         │
    │                                                                      │
    │   Range: bytes=0-9,20-29   multi-range: ignored, full 200 response  │
    │   Range: items=0-9         not bytes: ignored, full 200 response    │
    │   Range: bytes=5000-       past the end: 416 Range Not Satisfiable  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Mapping, Optional, Tuple
import re

from ..errors import RangeNotSatisfiable


# Headers a 304 may carry (RFC 7232 section 4.1)
NOT_MODIFIED_HEADERS = (
    "Cache-Control",
    "Content-Location",
    "Date",
    "ETag",
    "Expires",
    "Last-Modified",
    "Vary",
)

RANGE_PATTERN = re.compile(r"^bytes=(\d*)-(\d*)$")


def make_etag(size: int, modified_at: datetime) -> str:
    """
    Weak ETag from size and mtime in milliseconds.

        >>> make_etag(5120, datetime(2024, 6, 15, 10, tzinfo=timezone.utc))
        'W/"5120-1718445600000"'
    """
    return f'W/"{size}-{int(modified_at.timestamp() * 1000)}"'


def parse_http_date(value: str) -> Optional[datetime]:
    """Parse an HTTP-date; None when it is not one."""
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_range(
    header: str,
    size: int,
    start: Optional[int] = None,
    end: Optional[int] = None,
) -> Optional[Tuple[int, int]]:
    """
    Work out the inclusive byte window for a ``Range`` header.

    ``start``/``end`` are configured overrides; when given they win over
    the values in the header.

    Returns:
        ``(start, end)``, or None when the header should be ignored
        (not a single ``bytes=`` range) and the full body served.

    Raises:
        RangeNotSatisfiable: The window does not fit inside the file.
    """
    match = RANGE_PATTERN.match(header.strip())
    if not match:
        return None

    first, last = match.groups()
    if not first and not last:
        return None

    if first:
        range_start = int(first)
        range_end = int(last) if last else size - 1
    else:
        # Suffix form: the last N bytes
        suffix = int(last)
        if suffix == 0:
            raise RangeNotSatisfiable(size)
        range_start = max(size - suffix, 0)
        range_end = size - 1

    if start is not None:
        range_start = start
    if end is not None:
        range_end = end

    if range_start >= size or range_end >= size or range_start > range_end:
        raise RangeNotSatisfiable(size)

    return range_start, range_end


def _strip_weak(tag: str) -> str:
    tag = tag.strip()
    return tag[2:] if tag.startswith("W/") else tag


def is_fresh(request_headers: Mapping[str, str], response_headers: Mapping[str, str]) -> bool:
    """
    Decide whether the client's cached copy is still good (answer 304).

    =====================================================================
    RULES
    =====================================================================

    1. Neither If-None-Match nor If-Modified-Since: not fresh.
    2. Request ``Cache-Control: no-cache``: not fresh (forced reload).
    3. If-None-Match: ``*`` or any listed tag equal to our ETag under
       weak comparison.
    4. If-Modified-Since: our Last-Modified exists and is not newer.
    5. Both headers present: both must hold.

    =====================================================================

    ``request_headers`` keys are lowercase; ``response_headers`` uses the
    canonical names the responder writes.
    """
    if_none_match = request_headers.get("if-none-match")
    if_modified_since = request_headers.get("if-modified-since")

    if not if_none_match and not if_modified_since:
        return False

    cache_control = request_headers.get("cache-control", "")
    if re.search(r"(?:^|,)\s*no-cache\s*(?:,|$)", cache_control):
        return False

    if if_none_match and if_none_match.strip() != "*":
        etag = response_headers.get("ETag")
        if not etag:
            return False
        wanted = _strip_weak(etag)
        if not any(_strip_weak(tag) == wanted for tag in if_none_match.split(",")):
            return False

    if if_modified_since:
        last_modified = response_headers.get("Last-Modified")
        if not last_modified:
            return False
        modified = parse_http_date(last_modified)
        since = parse_http_date(if_modified_since)
        if modified is None or since is None:
            return False
        if modified > since:
            return False

    return True
