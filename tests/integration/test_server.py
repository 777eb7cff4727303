"""
Integration tests: a real AssetServer on a loopback port, raw HTTP/1.1.
"""

import asyncio
from typing import Dict, Tuple

import pytest
import pytest_asyncio

from assetserver import AssetServer, ServeOptions, ServerConfig


async def send_raw(port: int, raw: bytes) -> bytes:
    """Send raw bytes, read until the server closes the connection."""
    reader, writer = await asyncio.open_connection("127.0.0.1", port)
    writer.write(raw)
    await writer.drain()
    data = await asyncio.wait_for(reader.read(), timeout=5)
    writer.close()
    await writer.wait_closed()
    return data


def parse_response(data: bytes) -> Tuple[int, Dict[str, str], bytes]:
    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    status = int(lines[0].split(" ")[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return status, headers, body


async def get(port: int, path: str, method: str = "GET", **headers: str):
    lines = [f"{method} {path} HTTP/1.1", "Host: localhost", "Connection: close"]
    lines += [f"{name.replace('_', '-')}: {value}" for name, value in headers.items()]
    raw = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")
    return parse_response(await send_raw(port, raw))


@pytest_asyncio.fixture
async def server(asset_root):
    srv = AssetServer(
        str(asset_root),
        ServeOptions(gzip=True, extensions=("html",), max_age=60),
        ServerConfig(host="127.0.0.1", port=0, log_level="WARNING"),
    )
    await srv.start()
    yield srv
    await srv.stop()


class TestAssetServer:

    @pytest.mark.asyncio
    async def test_get_file(self, server):
        status, headers, body = await get(server.port, "/hello.txt")

        assert status == 200
        assert body == b"Hello, World!"
        assert headers["content-length"] == "13"
        assert headers["cache-control"] == "public, max-age=60"
        assert headers["connection"] == "close"
        assert "x-request-id" in headers

    @pytest.mark.asyncio
    async def test_head(self, server):
        status, headers, body = await get(server.port, "/hello.txt", method="HEAD")

        assert status == 200
        assert headers["content-length"] == "13"
        assert body == b""

    @pytest.mark.asyncio
    async def test_index(self, server):
        status, _, body = await get(server.port, "/")
        assert status == 200
        assert body == b"<h1>home</h1>"

    @pytest.mark.asyncio
    async def test_range(self, server):
        status, headers, body = await get(server.port, "/hello.txt", range="bytes=0-4")

        assert status == 206
        assert headers["content-range"] == "bytes 0-4/13"
        assert body == b"Hello"

    @pytest.mark.asyncio
    async def test_range_not_satisfiable(self, server):
        status, headers, body = await get(server.port, "/hello.txt", range="bytes=50-")

        assert status == 416
        assert headers["content-range"] == "bytes */13"
        assert body == b""

    @pytest.mark.asyncio
    async def test_not_modified(self, server):
        _, first, _ = await get(server.port, "/hello.txt")
        status, headers, body = await get(server.port, "/hello.txt", if_none_match=first["etag"])

        assert status == 304
        assert body == b""
        assert "content-length" not in headers

    @pytest.mark.asyncio
    async def test_gzip_sibling(self, server):
        status, headers, body = await get(server.port, "/app.js", accept_encoding="gzip")

        assert status == 200
        assert headers["content-encoding"] == "gzip"
        assert headers["vary"] == "Accept-Encoding"
        assert body == b"\x1f\x8b\x08gzipped-app-js"

    @pytest.mark.asyncio
    async def test_extension_fallback(self, server):
        status, _, body = await get(server.port, "/about")
        assert status == 200
        assert body == b"<h1>about</h1>"

    @pytest.mark.asyncio
    async def test_miss_is_404(self, server):
        status, _, body = await get(server.port, "/nope.txt")

        assert status == 404
        assert body == b"File or directory /nope.txt not found"

    @pytest.mark.asyncio
    async def test_traversal(self, server):
        status, _, _ = await get(server.port, "/../../etc/passwd")
        assert status == 404

    @pytest.mark.asyncio
    async def test_post_with_body(self, server):
        raw = (
            b"POST /hello.txt HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n"
            b"Content-Length: 5\r\n\r\nhello"
        )
        status, _, _ = parse_response(await send_raw(server.port, raw))
        assert status == 404

    @pytest.mark.asyncio
    async def test_malformed_request(self, server):
        status, headers, _ = parse_response(await send_raw(server.port, b"NONSENSE\r\n\r\n"))

        assert status == 400
        assert headers["connection"] == "close"

    @pytest.mark.asyncio
    async def test_keep_alive(self, server):
        reader, writer = await asyncio.open_connection("127.0.0.1", server.port)
        try:
            for _ in range(2):
                writer.write(b"GET /hello.txt HTTP/1.1\r\nHost: localhost\r\n\r\n")
                await writer.drain()
                head = await asyncio.wait_for(reader.readuntil(b"\r\n\r\n"), timeout=5)
                status, headers, _ = parse_response(head)
                body = await reader.readexactly(int(headers["content-length"]))

                assert status == 200
                assert headers["connection"] == "keep-alive"
                assert body == b"Hello, World!"
        finally:
            writer.close()
            await writer.wait_closed()

    @pytest.mark.asyncio
    async def test_chunked_body_does_not_leak_into_next_request(self, server):
        reader, writer = await asyncio.open_connection("127.0.0.1", server.port)
        try:
            writer.write(
                b"POST /hello.txt HTTP/1.1\r\nHost: localhost\r\nTransfer-Encoding: chunked\r\n\r\n"
                b"5;note=x\r\nhello\r\n0\r\nX-Trailer: yes\r\n\r\n"
                b"GET /hello.txt HTTP/1.1\r\nHost: localhost\r\n\r\n"
            )
            await writer.drain()

            statuses = []
            bodies = []
            for _ in range(2):
                head = await asyncio.wait_for(reader.readuntil(b"\r\n\r\n"), timeout=5)
                status, headers, _ = parse_response(head)
                statuses.append(status)
                bodies.append(await reader.readexactly(int(headers["content-length"])))
        finally:
            writer.close()
            await writer.wait_closed()

        assert statuses == [404, 200]
        assert bodies[1] == b"Hello, World!"

    @pytest.mark.asyncio
    async def test_unsupported_transfer_coding(self, server):
        raw = (
            b"POST /hello.txt HTTP/1.1\r\nHost: localhost\r\n"
            b"Transfer-Encoding: gzip\r\n\r\n"
        )
        status, headers, _ = parse_response(await send_raw(server.port, raw))

        assert status == 400
        assert headers["connection"] == "close"

    @pytest.mark.asyncio
    async def test_bad_chunk_size(self, server):
        raw = (
            b"POST /hello.txt HTTP/1.1\r\nHost: localhost\r\n"
            b"Transfer-Encoding: chunked\r\n\r\nzz\r\n"
        )
        status, _, _ = parse_response(await send_raw(server.port, raw))
        assert status == 400


class TestNoFallthroughServer:

    @pytest.mark.asyncio
    async def test_method_not_allowed(self, asset_root):
        srv = AssetServer(
            str(asset_root),
            ServeOptions(fallthrough=False),
            ServerConfig(host="127.0.0.1", port=0),
        )
        await srv.start()
        try:
            status, headers, body = await get(srv.port, "/hello.txt", method="DELETE")
        finally:
            await srv.stop()

        assert status == 405
        assert headers["allow"] == "GET, HEAD"
        assert body == b""
