"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

Defines the async middleware protocol and the pipeline that chains it.

=============================================================================
CHAIN OF RESPONSIBILITY
=============================================================================

Each middleware either answers the request itself or hands it on by
awaiting ``next()``. A middleware can also hand on an ERROR with
``next(error)``; the pipeline then skips the rest of the chain and calls
its error responder.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          REQUEST FLOW                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Exchange ─────────────────────────────────────────────►           │
    │                                                                      │
    │   ┌──────────┐    ┌────────────────┐    ┌─────────────────┐         │
    │   │ Logging  │───►│ StaticFile     │───►│ error responder │         │
    │   │    MW    │    │ Handler        │    │ (404 default)   │         │
    │   └──────────┘    └───────┬────────┘    └─────────────────┘         │
    │                           │                      ▲                  │
    │                           │ hit: exchange.send() │ next(error)      │
    │                           ▼                      │                  │
    │                       response ──────────────────┘                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Responses are not returned up the chain: whoever answers calls
``exchange.send(...)``. Middleware that wants to observe the response
passes a decorated exchange down with ``next(exchange=...)``.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional
import logging

from ..errors import default_error_responder
from ..http.request import Exchange


logger = logging.getLogger(__name__)


# next(error=None, exchange=None)
NextFunction = Callable[..., Awaitable[None]]

# responder(exchange, error) renders a miss (error=None) or an error
ErrorResponder = Callable[[Exchange, Optional[BaseException]], Awaitable[None]]


class Middleware(ABC):
    """
    Abstract base class for async middleware.

    =========================================================================
    MIDDLEWARE ANATOMY
    =========================================================================

        class RequireHost(Middleware):
            async def __call__(self, exchange, next):
                if not exchange.request.get_header("host"):
                    await next(HostMissing("Host header required"))
                    return
                await next()

    =========================================================================
    """

    @abstractmethod
    async def __call__(self, exchange: Exchange, next: NextFunction) -> None:
        """
        Answer via ``exchange.send()`` or continue with ``await next()``.

        Args:
            exchange: Request plus the response-sending capability.
            next: ``next()`` continues, ``next(error)`` reports an error,
                ``next(exchange=...)`` continues with a decorated exchange.
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Runs middleware in the order added; first added is outermost.

        pipeline = MiddlewarePipeline()
        pipeline.use(LoggingMiddleware(), StaticFileHandler("public"))
        await pipeline.handle(exchange)

    When the chain runs out, or a middleware calls ``next(error)``, the
    error responder answers (``default_error_responder`` unless another
    is given).
    """

    def __init__(self, error_responder: Optional[ErrorResponder] = None):
        self._middleware: List[Middleware] = []
        self._error_responder = error_responder or default_error_responder

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    async def handle(self, exchange: Exchange) -> None:
        """Run ``exchange`` through the chain."""
        await self._dispatch(0, exchange)

    async def _dispatch(
        self,
        index: int,
        exchange: Exchange,
        error: Optional[BaseException] = None,
    ) -> None:
        if error is not None or index >= len(self._middleware):
            await self._error_responder(exchange, error)
            return

        middleware = self._middleware[index]

        async def next(error: Optional[BaseException] = None, exchange: Exchange = exchange) -> None:
            await self._dispatch(index + 1, exchange, error)

        await middleware(exchange, next)
