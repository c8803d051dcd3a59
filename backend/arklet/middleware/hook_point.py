"""
Pipeline stage that runs a hook chain for every request.
"""
from starlette.requests import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from arklet.core.errors import HandlerChainError
from arklet.core.hooks import HookRegistry


class HookPointMiddleware:
    """
    Invoke `hooks.invoke(name, request)` before passing the request on.

    The next stage only runs after the last handler has finished. A handler
    error stops the request here; it is raised as HandlerChainError so the
    terminal error stage can answer it.
    """

    def __init__(self, app: ASGIApp, hooks: HookRegistry, name: str) -> None:
        self.app = app
        self.hooks = hooks
        self.name = name
        # fail at assembly, not on the first request
        hooks.qualify(name)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        try:
            await self.hooks.invoke(self.name, request)
        except Exception as exc:
            raise HandlerChainError(self.name, exc) from exc
        await self.app(scope, receive, send)
