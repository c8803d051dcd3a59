"""
Router stage: a FastAPI APIRouter whose unmatched requests continue down the
pipeline instead of answering 404.
"""
from collections.abc import Callable
from contextlib import AsyncExitStack

from fastapi import APIRouter
from starlette.types import ASGIApp, Receive, Scope, Send

# Set by FastAPI's own app for every request; APIRoute handlers expect it
# (uploaded files are closed through it).
_ASTACK_KEY = "fastapi_middleware_astack"


class RouterMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        configure: Callable[[APIRouter], None],
        prefix: str = "",
    ) -> None:
        self.app = app
        self.router = APIRouter(prefix=prefix, default=app)
        configure(self.router)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self.app(scope, receive, send)
            return
        if _ASTACK_KEY in scope:
            await self.router(scope, receive, send)
            return
        async with AsyncExitStack() as stack:
            scope[_ASTACK_KEY] = stack
            await self.router(scope, receive, send)
