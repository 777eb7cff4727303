"""
=============================================================================
PATH RESOLVER
=============================================================================

Turns a request URL into a ROOT-RELATIVE KEY: a POSIX path with no leading
slash that can never point outside the served root.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   URL                            prefix     key                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │   /css/site.css?v=3              -          "css/site.css"          │
    │   /                              -          ""  (root directory)    │
    │   /static/img/a%20b.png          /static    "img/a b.png"           │
    │   /other/x.js                    /static    None (not ours)         │
    │   /a/./b/../c.txt                -          "a/c.txt"               │
    │   /../etc/passwd                 -          AssetNotFound           │
    │   /a%00.txt                      -          AssetNotFound           │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

The classic attack is ``GET /../../etc/passwd``. Dot segments are collapsed
here, on the decoded path, before anything touches the filesystem; a ``..``
that would climb above the root rejects the whole request instead of being
clamped to the root.

The resolver is pure string work. Symlinks that point outside the root are
the source's job (see ``LocalFileSource``).

=============================================================================
"""

from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import unquote
import logging

from .config import ServeOptions
from .errors import AssetNotFound


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedURL:
    """
    A request target split at the first ``?``.

    ``query`` excludes the ``?``; ``search`` includes it. Both are None when
    the target has no ``?`` at all.
    """

    pathname: str
    query: Optional[str] = None
    search: Optional[str] = None


def parse_url(url: str) -> ParsedURL:
    """
    Split a request target into pathname and query.

    Examples:
        >>> parse_url("/a.js?v=3")
        ParsedURL(pathname='/a.js', query='v=3', search='?v=3')
        >>> parse_url("/a.js?")
        ParsedURL(pathname='/a.js', query='', search='?')
    """
    pathname, sep, query = url.partition("?")
    if not sep:
        return ParsedURL(pathname=pathname)
    return ParsedURL(pathname=pathname, query=query, search="?" + query)


def _segments(path: str) -> List[str]:
    return [segment for segment in path.split("/") if segment]


def resolve(url: str, options: ServeOptions) -> Optional[str]:
    """
    Map a request URL to a root-relative key.

    Returns:
        The key (``""`` for the root directory), or None when the URL is
        outside ``options.prefix`` and this responder must not handle it.

    Raises:
        AssetNotFound: The path cannot be decoded, contains NUL or
            backslash, or climbs above the root.
    """
    pathname = parse_url(url).pathname

    if options.prefix:
        prefix = _segments(options.prefix)
        segments = _segments(pathname)
        if segments[:len(prefix)] != prefix:
            return None
        pathname = "/".join(segments[len(prefix):])

    try:
        decoded = unquote(pathname, encoding="utf-8", errors="strict")
    except UnicodeDecodeError:
        raise AssetNotFound(f"Malformed path: {pathname}")

    if "\x00" in decoded or "\\" in decoded:
        logger.warning(f"Rejected path with NUL or backslash: {pathname!r}")
        raise AssetNotFound(f"Malformed path: {pathname}")

    stack: List[str] = []
    for segment in decoded.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not stack:
                logger.warning(f"Path traversal attempt: {pathname}")
                raise AssetNotFound(f"Path escapes root: {pathname}")
            stack.pop()
        else:
            stack.append(segment)

    return "/".join(stack)
