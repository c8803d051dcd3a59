"""
Request logging stage.

Formats are morgan-style token strings (":method :url :status") or one of the
named presets below. A callable may be given instead; it receives the
collected request/response fields and returns the line to log (or None to
skip).
"""
import logging
import re
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

PRESETS = {
    "combined": ':remote-addr - - [:date] ":method :url HTTP/:http-version" :status :res[content-length] ":referrer" ":user-agent"',
    "common": ':remote-addr - - [:date] ":method :url HTTP/:http-version" :status :res[content-length]',
    "dev": ":method :url :status :response-time ms - :res[content-length]",
    "short": ":remote-addr :method :url HTTP/:http-version :status :res[content-length] - :response-time ms",
    "tiny": ":method :url :status :res[content-length] - :response-time ms",
}

_TOKEN = re.compile(r":([a-z][a-z\-]*)(?:\[([^\]]+)\])?")

Formatter = Callable[[dict[str, Any]], str | None]


def compile_format(fmt: str) -> Formatter:
    """Turn a token format (or preset name) into a formatter function."""
    fmt = PRESETS.get(fmt, fmt)

    def _format(info: dict[str, Any]) -> str:
        def _replace(match: re.Match) -> str:
            token, arg = match.group(1), match.group(2)
            if token == "req" and arg:
                value = info["request_headers"].get(arg.lower())
            elif token == "res" and arg:
                value = info["response_headers"].get(arg.lower())
            else:
                value = info.get(token.replace("-", "_"))
            return "-" if value is None else str(value)

        return _TOKEN.sub(_replace, fmt)

    return _format


class AccessLogMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        fmt: str | Formatter,
        logger_name: str = "arklet.access",
        skip: Callable[[dict[str, Any]], bool] | None = None,
    ) -> None:
        self.app = app
        self.formatter = fmt if callable(fmt) else compile_format(fmt)
        self.logger = logging.getLogger(logger_name)
        self.skip = skip

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.perf_counter()
        response: dict[str, Any] = {"status": None, "headers": Headers()}

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                response["status"] = message["status"]
                response["headers"] = Headers(raw=message.get("headers", []))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            self._log(scope, response, started)

    def _log(self, scope: Scope, response: dict[str, Any], started: float) -> None:
        url = scope.get("path", "")
        if scope.get("query_string"):
            url = f"{url}?{scope['query_string'].decode('latin-1')}"
        request_headers = Headers(scope=scope)
        client = scope.get("client")
        info = {
            "method": scope.get("method"),
            "url": url,
            "status": response["status"],
            "response_time": f"{(time.perf_counter() - started) * 1000:.3f}",
            "remote_addr": client[0] if client else None,
            "http_version": scope.get("http_version"),
            "date": datetime.now(timezone.utc).strftime("%d/%b/%Y:%H:%M:%S +0000"),
            "referrer": request_headers.get("referer"),
            "user_agent": request_headers.get("user-agent"),
            "request_headers": request_headers,
            "response_headers": response["headers"],
        }
        if self.skip is not None and self.skip(info):
            return
        line = self.formatter(info)
        if line:
            self.logger.info(line)
