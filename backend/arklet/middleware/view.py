"""
View locals and view engine stages.

Rendering itself lives outside the framework; these stages only make the
configured engine and the shared template locals available on
`request.state` for route handlers.
"""
from starlette.types import ASGIApp, Receive, Scope, Send


class ViewLocalsMiddleware:
    """Give every request its own copy of the shared locals."""

    def __init__(self, app: ASGIApp, **locals_) -> None:
        self.app = app
        self.locals = locals_

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            scope.setdefault("state", {})["locals"] = dict(self.locals)
        await self.app(scope, receive, send)


class ViewEngineMiddleware:
    def __init__(self, app: ASGIApp, engine) -> None:
        self.app = app
        self.engine = engine

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            scope.setdefault("state", {})["view_engine"] = self.engine
        await self.app(scope, receive, send)
