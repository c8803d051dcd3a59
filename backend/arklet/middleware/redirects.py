from starlette.responses import RedirectResponse
from starlette.types import ASGIApp, Receive, Scope, Send


class RedirectsMiddleware:
    """Redirect requests whose path is in the redirect table; pass others on."""

    def __init__(self, app: ASGIApp, redirects: dict[str, str], status_code: int = 302) -> None:
        self.app = app
        self.redirects = dict(redirects)
        self.status_code = status_code

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        target = self.redirects.get(scope["path"]) if scope["type"] == "http" else None
        if target is None:
            await self.app(scope, receive, send)
            return
        response = RedirectResponse(target, status_code=self.status_code)
        await response(scope, receive, send)
