"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

One line per request on the ``assetserver.access`` logger, with timing
and a request ID.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (default):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [15/Jun/2024:10:55:36 +0000] "GET /app.js" 206 1024  │
    │ 0.84ms a1b2c3d4                                                     │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"request_id": "a1b2c3d4", "method": "GET", "path": "/app.js",     │
    │  "status_code": 206, "content_length": 1024, "duration_ms": 0.84}  │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
HOW THE STATUS IS OBSERVED
=============================================================================

Responses are sent, not returned, so the middleware hands the rest of the
chain a decorated copy of the exchange whose ``send_response`` records
status and size and adds ``X-Request-ID`` before delegating to the real
one. The original exchange is never modified.

=============================================================================
"""

from dataclasses import dataclass, replace
from typing import Dict, Optional
import json
import logging
import time
import uuid

from .base import Middleware, NextFunction
from ..http.request import Exchange


logger = logging.getLogger("assetserver.access")


@dataclass
class RequestLog:
    """Structured access log entry."""

    request_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "method": self.method,
            "path": self.path,
            "client_ip": self.client_ip,
            "user_agent": self.user_agent,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        """Apache-style line."""
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms {self.request_id}'
        )


class LoggingMiddleware(Middleware):
    """
    Access logging; add it FIRST so it sees every request.

        pipeline.add(LoggingMiddleware(log_format="json"))
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
    ):
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level

    async def __call__(self, exchange: Exchange, next: NextFunction) -> None:
        request = exchange.request
        request_id = request.get_header("x-request-id") or uuid.uuid4().hex[:8]
        sent: Dict[str, int] = {}
        start_time = time.perf_counter()

        async def send_response(status: int, headers: Dict[str, str], body: bytes) -> None:
            if self.include_request_id:
                headers = {**headers, "X-Request-ID": request_id}
            sent["status"] = status
            sent["length"] = len(body)
            await exchange.send_response(status, headers, body)

        try:
            await next(exchange=replace(exchange, send_response=send_response))
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.url} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        self._emit(exchange, request_id, sent.get("status"), sent.get("length", 0), start_time)

    def _emit(
        self,
        exchange: Exchange,
        request_id: str,
        status: Optional[int],
        length: int,
        start_time: float,
    ) -> None:
        request = exchange.request
        entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.url,
            client_ip=exchange.client_address[0],
            user_agent=request.get_header("user-agent") or "-",
            status_code=status or 0,
            content_length=length,
            duration_ms=(time.perf_counter() - start_time) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())
