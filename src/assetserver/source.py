"""
=============================================================================
ASSET SOURCES
=============================================================================

The responder never touches the filesystem directly. It asks an
``AssetSource`` two questions:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   stat(key)              → AssetMetadata                            │
    │                            exists? directory? size? mtime?          │
    │                                                                      │
    │   read(key, start, end)  → bytes                                    │
    │                            whole file, or the inclusive window      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Both are coroutines: every stat and every read is a suspension point, so
one slow disk never blocks the other connections of the event loop.

``LocalFileSource`` answers them from a directory using ``aiofiles``. An
object-store backed source only has to implement the same two methods.

=============================================================================
ERROR MAPPING
=============================================================================

    FileNotFoundError, NotADirectoryError    → absent (exists=False)
    Symlink resolving outside the root       → absent, logged as a warning
    Any other OSError (EACCES, EIO, ...)     → AssetIOError (500)

"Permission denied" is NOT reported as "not found": hiding it would turn
a misconfigured deployment into a silent stream of 404s.

=============================================================================
"""

import asyncio
import logging
import stat as stat_module
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

import aiofiles
import aiofiles.os

from .errors import AssetIOError, AssetNotFound


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetMetadata:
    """Result of one stat. Request-local; never cached."""

    exists: bool
    is_directory: bool = False
    size: int = 0
    modified_at: Optional[datetime] = None


MISSING = AssetMetadata(exists=False)


class AssetSource(Protocol):
    async def stat(self, key: str) -> AssetMetadata:
        ...

    async def read(self, key: str, start: int = 0, end: Optional[int] = None) -> bytes:
        ...


class LocalFileSource:
    """
    Serves keys from a directory on the local filesystem.

        source = LocalFileSource("/var/www/site")
        meta = await source.stat("css/site.css")
        head = await source.read("css/site.css", 0, 99)
    """

    def __init__(self, root: str):
        # Resolve once: the containment check compares against this
        self.root = Path(root).resolve()

    def is_directory(self) -> bool:
        return self.root.is_dir()

    async def _locate(self, key: str) -> Optional[Path]:
        """
        Filesystem path for ``key`` with symlinks resolved, or None when
        it resolves outside the root.
        """
        candidate = self.root / key if key else self.root
        loop = asyncio.get_running_loop()
        try:
            real = await loop.run_in_executor(None, candidate.resolve)
        except OSError as e:
            raise AssetIOError(f"Cannot resolve {key!r}: {e.strerror or e}", e) from e
        except RuntimeError as e:
            # Symlink loop (Python < 3.13 raises RuntimeError, not ELOOP)
            logger.error(f"resolve failed for {key!r}: {e}")
            raise AssetIOError(f"Cannot resolve {key!r}: {e}", e) from e

        try:
            real.relative_to(self.root)
        except ValueError:
            logger.warning(f"Symlink escapes root: {key} -> {real}")
            return None
        return real

    async def stat(self, key: str) -> AssetMetadata:
        path = await self._locate(key)
        if path is None:
            return MISSING

        try:
            result = await aiofiles.os.stat(path)
        except (FileNotFoundError, NotADirectoryError):
            return MISSING
        except OSError as e:
            logger.error(f"stat failed for {key!r}: {e}")
            raise AssetIOError(f"Cannot stat {key!r}: {e.strerror or e}", e) from e

        return AssetMetadata(
            exists=True,
            is_directory=stat_module.S_ISDIR(result.st_mode),
            size=result.st_size,
            modified_at=datetime.fromtimestamp(result.st_mtime, tz=timezone.utc),
        )

    async def read(self, key: str, start: int = 0, end: Optional[int] = None) -> bytes:
        """
        Read bytes ``start..end`` inclusive (to EOF when ``end`` is None).

        Raises:
            AssetNotFound: The file vanished after it was stat'ed.
            AssetIOError: Any other OSError.
        """
        path = await self._locate(key)
        if path is None:
            raise AssetNotFound(f"File or directory {key} not found")

        try:
            async with aiofiles.open(path, mode="rb") as f:
                if start:
                    await f.seek(start)
                if end is None:
                    return await f.read()
                return await f.read(end - start + 1)
        except (FileNotFoundError, NotADirectoryError):
            raise AssetNotFound(f"File or directory {key} not found")
        except OSError as e:
            logger.error(f"read failed for {key!r}: {e}")
            raise AssetIOError(f"Cannot read {key!r}: {e.strerror or e}", e) from e
