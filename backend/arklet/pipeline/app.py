"""
Composed request pipeline and the application instance serving it.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.middleware import Middleware
from starlette.types import Receive, Scope, Send

from arklet.middleware.errors import ErrorBoundaryMiddleware, ErrorHandlers

if TYPE_CHECKING:
    from arklet.core.arklet import Arklet

logger = logging.getLogger(__name__)


class Pipeline:
    """
    ASGI app running the assembled middleware in order.

    The first middleware is outermost; the error handlers' `not_found`
    endpoint sits innermost. Every layer is wrapped in an error boundary, so
    an exception is answered right where it escapes and the error response
    still passes through the stages outside it.
    """

    def __init__(self, middleware: list[Middleware], errors: ErrorHandlers) -> None:
        self.errors = errors
        app = ErrorBoundaryMiddleware(errors.not_found, errors)
        for mw in reversed(middleware):
            app = ErrorBoundaryMiddleware(mw.cls(app, *mw.args, **mw.kwargs), errors)
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.app(scope, receive, send)


class Application:
    """
    The application instance: owns the assembled pipeline and references the
    Arklet instance's options and hook registry.

    Also answers ASGI lifespan events; shutdown closes the database
    connection opened during bootstrap.
    """

    def __init__(self, arklet: Arklet, stages: list[str], pipeline: Pipeline) -> None:
        self.arklet = arklet
        self.config = arklet.config
        self.hooks = arklet.hooks
        self.stages = list(stages)
        self.pipeline = pipeline

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return
        await self.pipeline(scope, receive, send)

    async def _lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                try:
                    await self.arklet.database.close()
                except Exception as exc:
                    logger.exception("Error closing database during shutdown")
                    await send({"type": "lifespan.shutdown.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.shutdown.complete"})
                return
