"""
=============================================================================
ASSET SERVER
=============================================================================

A small asyncio HTTP/1.1 host that runs the static file handler on its own.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       SERVER ARCHITECTURE                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   asyncio.start_server                                              │
    │        │   one coroutine per connection                             │
    │        ▼                                                             │
    │   _handle_connection      keep-alive loop                           │
    │        │   read head (readuntil CRLFCRLF) → RequestParser           │
    │        │   discard any Content-Length or chunked body               │
    │        ▼                                                             │
    │   Exchange(request, send_response)                                  │
    │        │                                                             │
    │        ▼                                                             │
    │   MiddlewarePipeline                                                │
    │     LoggingMiddleware → StaticFileHandler → error responder         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Everything above the pipeline is host plumbing; the handler only ever sees
the Exchange. Any other host can drive the same pipeline.

=============================================================================
USAGE
=============================================================================

    server = AssetServer("public", ServeOptions(max_age=3600))
    server.run()                     # blocking, Ctrl+C to stop

    # or, inside a running event loop:
    await server.start()
    ...
    await server.stop()

=============================================================================
"""

import asyncio
import logging
import re
from typing import Dict, List, Optional

from .config import ServeOptions, ServerConfig
from .handlers.static import StaticFileHandler
from .http.request import AssetRequest, Exchange, HTTPParseError, RequestParser
from .http.response import HTTPResponse, error_response
from .http.status_codes import HTTPStatus, status_from_code
from .middleware.base import MiddlewarePipeline
from .middleware.logging import LoggingMiddleware


logger = logging.getLogger(__name__)

CHUNK_SIZE_PATTERN = re.compile(rb"^[0-9A-Fa-f]+$")


class AssetServer:
    """
    Serves one directory over HTTP.

    Args:
        root: Directory to serve.
        options: How files are served (ServeOptions).
        config: How the server listens and logs (ServerConfig).
    """

    def __init__(
        self,
        root: str,
        options: Optional[ServeOptions] = None,
        config: Optional[ServerConfig] = None,
    ):
        self.config = config or ServerConfig()
        self.config.validate()

        self.handler = StaticFileHandler(root, options)
        self.pipeline = MiddlewarePipeline()
        self.pipeline.use(
            LoggingMiddleware(log_format=self.config.log_format),
            self.handler,
        )

        self._parser = RequestParser(max_head_size=self.config.max_head_size)
        self._server: Optional[asyncio.AbstractServer] = None

    @property
    def port(self) -> int:
        """Bound port; useful when the config asked for port 0."""
        if self._server is None or not self._server.sockets:
            return self.config.port
        return self._server.sockets[0].getsockname()[1]

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        self._server = await asyncio.start_server(
            self._handle_connection,
            host=self.config.host,
            port=self.config.port,
            backlog=self.config.backlog,
            limit=self.config.max_head_size,
        )
        logger.info(f"Serving on http://{self.config.host}:{self.port}")

    async def stop(self) -> None:
        if self._server is None:
            return
        logger.info("Shutting down server...")
        self._server.close()
        await self._server.wait_closed()
        self._server = None
        logger.info("Server stopped")

    async def serve_forever(self) -> None:
        await self.start()
        try:
            await self._server.serve_forever()
        finally:
            await self.stop()

    def run(self) -> None:
        """Start the server and block until Ctrl+C."""
        self._setup_logging()
        try:
            asyncio.run(self.serve_forever())
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("assetserver").setLevel(level)

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    async def _handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """
        Keep-alive loop for one client connection.

        1. Read a request head (idle timeout = keep_alive_timeout)
        2. Parse it; malformed → error response and close
        3. Run the pipeline
        4. Repeat while both sides want keep-alive
        """
        peer = writer.get_extra_info("peername") or ("", 0)
        client_address = (str(peer[0]), int(peer[1]))

        try:
            while True:
                try:
                    head = await asyncio.wait_for(
                        reader.readuntil(b"\r\n\r\n"),
                        timeout=self.config.keep_alive_timeout,
                    )
                except asyncio.IncompleteReadError:
                    break  # Client closed the connection
                except asyncio.LimitOverrunError:
                    await self._send_error(writer, HTTPStatus.PAYLOAD_TOO_LARGE, "Request head too large")
                    break
                except asyncio.TimeoutError:
                    break

                try:
                    request = self._parser.parse(head)
                except HTTPParseError as e:
                    await self._send_error(writer, status_from_code(e.status_code), str(e))
                    break

                try:
                    await self._discard_body(reader, request)
                except HTTPParseError as e:
                    await self._send_error(writer, status_from_code(e.status_code), str(e))
                    break
                except asyncio.IncompleteReadError:
                    break

                keep_alive = request.is_keep_alive and self.config.keep_alive
                await self._process(request, writer, client_address, keep_alive)

                if not keep_alive:
                    break
        except ConnectionError as e:
            logger.debug(f"Connection from {client_address[0]} dropped: {e}")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass

    async def _discard_body(self, reader: asyncio.StreamReader, request: AssetRequest) -> None:
        """
        Read and drop the request body so the next request on the
        connection starts at a request line.

        Transfer-Encoding wins over Content-Length (RFC 7230 section 3.3.3).
        A body whose final coding is not ``chunked`` cannot be delimited, so
        it is a 400 and the connection is closed.
        """
        transfer_encoding = request.get_header("transfer-encoding")
        if transfer_encoding:
            codings = [coding.strip().lower() for coding in transfer_encoding.split(",")]
            if codings[-1] != "chunked":
                raise HTTPParseError(f"Unsupported transfer coding: {transfer_encoding}")
            await self._discard_chunks(reader)
            return

        length = request.get_header("content-length")
        if length.isdigit() and int(length) > 0:
            await reader.readexactly(int(length))

    async def _discard_chunks(self, reader: asyncio.StreamReader) -> None:
        """
        Skip a chunked body: size lines in hex (extensions after ``;``),
        each followed by that many bytes and CRLF, then ``0``, optional
        trailer fields and a blank line.
        """
        try:
            while True:
                line = await reader.readuntil(b"\r\n")
                size_field = line.split(b";", 1)[0].strip()
                if not CHUNK_SIZE_PATTERN.match(size_field):
                    raise HTTPParseError(f"Invalid chunk size: {size_field.decode('latin-1')}")
                size = int(size_field, 16)
                if size == 0:
                    break
                await reader.readexactly(size + 2)

            while await reader.readuntil(b"\r\n") != b"\r\n":
                pass  # trailer field
        except asyncio.LimitOverrunError:
            raise HTTPParseError("Chunk line too long")

    async def _process(
        self,
        request: AssetRequest,
        writer: asyncio.StreamWriter,
        client_address: tuple,
        keep_alive: bool,
    ) -> None:
        sent: List[int] = []

        async def send_response(status: int, headers: Dict[str, str], body: bytes) -> None:
            if sent:
                raise RuntimeError("Response already sent")
            response = HTTPResponse(status=status_from_code(status), headers=dict(headers), body=body)
            self._connection_headers(response, keep_alive)
            writer.write(response.to_bytes(self.config.server_name, include_body=not request.is_head))
            await writer.drain()
            sent.append(status)

        exchange = Exchange(request=request, send_response=send_response, client_address=client_address)

        try:
            await self.pipeline.handle(exchange)
        except ConnectionError:
            raise
        except Exception as e:
            logger.exception(f"Handler error for {request.method} {request.url}: {e}")
            if not sent:
                await exchange.send(error_response(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error"))

    def _connection_headers(self, response: HTTPResponse, keep_alive: bool) -> None:
        if keep_alive:
            response.headers.setdefault("Connection", "keep-alive")
            response.headers.setdefault("Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}")
        else:
            response.headers["Connection"] = "close"

    async def _send_error(self, writer: asyncio.StreamWriter, status: HTTPStatus, message: str) -> None:
        """Errors raised before a request exists (parse errors, oversized heads)."""
        response = error_response(status, message)
        response.headers["Connection"] = "close"
        writer.write(response.to_bytes(self.config.server_name))
        await writer.drain()
