"""
Static asset stages: favicon and directory serving.

Unlike a mounted StaticFiles app, a miss falls through to the next stage
instead of answering 404.
"""
from pathlib import Path

from starlette.exceptions import HTTPException
from starlette.responses import FileResponse
from starlette.staticfiles import StaticFiles
from starlette.types import ASGIApp, Receive, Scope, Send

_READ_METHODS = ("GET", "HEAD")


class StaticFilesMiddleware:
    def __init__(self, app: ASGIApp, directory: str | Path, prefix: str = "/") -> None:
        self.app = app
        self.prefix = "/" + prefix.strip("/") if prefix.strip("/") else ""
        self.files = StaticFiles(directory=directory, check_dir=False)

    def _relative_path(self, path: str) -> str | None:
        if not self.prefix:
            return path.lstrip("/")
        if path == self.prefix or path.startswith(self.prefix + "/"):
            return path[len(self.prefix):].lstrip("/")
        return None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] not in _READ_METHODS:
            await self.app(scope, receive, send)
            return

        relative = self._relative_path(scope["path"])
        if not relative:
            await self.app(scope, receive, send)
            return

        try:
            response = await self.files.get_response(relative, scope)
        except HTTPException as exc:
            if exc.status_code != 404:
                raise
            await self.app(scope, receive, send)
            return
        await response(scope, receive, send)


class FaviconMiddleware:
    """Answer `/favicon.ico` from a single file."""

    def __init__(self, app: ASGIApp, path: str | Path, max_age: int = 86400) -> None:
        self.app = app
        self.path = Path(path)
        self.max_age = max_age

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if (
            scope["type"] != "http"
            or scope["path"] != "/favicon.ico"
            or scope["method"] not in _READ_METHODS
            or not self.path.is_file()
        ):
            await self.app(scope, receive, send)
            return

        response = FileResponse(
            self.path,
            media_type="image/x-icon",
            headers={"Cache-Control": f"public, max-age={self.max_age}"},
        )
        await response(scope, receive, send)
