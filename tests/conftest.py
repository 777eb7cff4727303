"""
pytest configuration and fixtures.
"""

import os
import socket
from pathlib import Path
from typing import Callable, Dict, List, Tuple

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from assetserver import AssetRequest, Exchange, ServeOptions, StaticFileHandler


# Fixed mtime for every file in the asset tree: 2024-06-15 10:00:00 UTC
ASSET_MTIME = 1718445600

DATA_BIN = bytes(range(256)) * 4


@pytest.fixture
def asset_root(tmp_path: Path) -> Path:
    """
    A small site:

        index.html            hello.txt        data.bin (1024 bytes)
        about.html            app.js.gz        style.css + style.css.gz
        404.html              .secret          .well-known/token.txt
        sub/index.html        docs/            docs.html
        empty/
    """
    files = {
        "index.html": b"<h1>home</h1>",
        "hello.txt": b"Hello, World!",
        "data.bin": DATA_BIN,
        "about.html": b"<h1>about</h1>",
        "app.js.gz": b"\x1f\x8b\x08gzipped-app-js",
        "style.css": b"body { color: red; }",
        "style.css.gz": b"\x1f\x8b\x08gzipped-style",
        "404.html": b"<h1>missing</h1>",
        ".secret": b"hidden",
        ".well-known/token.txt": b"token",
        "sub/index.html": b"<h1>sub</h1>",
        "docs/readme.txt": b"readme",
        "docs.html": b"<h1>docs</h1>",
    }
    for name, content in files.items():
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        os.utime(path, (ASSET_MTIME, ASSET_MTIME))

    (tmp_path / "empty").mkdir()
    return tmp_path


@pytest.fixture
def make_request() -> Callable[..., AssetRequest]:
    """Build an AssetRequest: make_request("/hello.txt", range="bytes=0-4")."""

    def factory(url: str = "/", method: str = "GET", **headers: str) -> AssetRequest:
        normalized = {name.replace("_", "-"): value for name, value in headers.items()}
        return AssetRequest.create(method, url, normalized)

    return factory


@pytest.fixture
def make_handler(asset_root: Path) -> Callable[..., StaticFileHandler]:
    """Handler over ``asset_root``: make_handler(gzip=True, extensions=["html"])."""

    def factory(**options) -> StaticFileHandler:
        return StaticFileHandler(str(asset_root), ServeOptions(**options))

    return factory


class RecordingExchange:
    """Collects what the pipeline sends, in place of a real connection."""

    def __init__(self, request: AssetRequest):
        self.sent: List[Tuple[int, Dict[str, str], bytes]] = []
        self.exchange = Exchange(
            request=request,
            send_response=self._send,
            client_address=("127.0.0.1", 50000),
        )

    async def _send(self, status: int, headers: Dict[str, str], body: bytes) -> None:
        self.sent.append((status, headers, body))

    @property
    def status(self) -> int:
        return self.sent[-1][0]

    @property
    def headers(self) -> Dict[str, str]:
        return self.sent[-1][1]

    @property
    def body(self) -> bytes:
        return self.sent[-1][2]


@pytest.fixture
def recording_exchange() -> Callable[[AssetRequest], RecordingExchange]:
    return RecordingExchange


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
