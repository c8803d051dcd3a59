"""
Body parsing and HTTP method override stages.

The parsed body is stored on `request.state.body`; the raw bytes are replayed
to later stages so route handlers can still read the request themselves.
"""
import json
from urllib.parse import parse_qsl

from starlette.datastructures import Headers
from starlette.exceptions import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

DEFAULT_LIMIT = 100 * 1024  # 100kb

OVERRIDE_HEADER = "x-http-method-override"
OVERRIDABLE_METHODS = ("PUT", "PATCH", "DELETE", "OPTIONS")


class BodyParserMiddleware:
    def __init__(self, app: ASGIApp, limit: int = DEFAULT_LIMIT) -> None:
        self.app = app
        self.limit = limit

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_type = Headers(scope=scope).get("content-type", "").split(";")[0].strip().lower()
        is_json = content_type == "application/json" or content_type.endswith("+json")
        is_form = content_type == "application/x-www-form-urlencoded"
        if not (is_json or is_form):
            await self.app(scope, receive, send)
            return

        messages, body = await self._read(receive)
        state = scope.setdefault("state", {})
        if not body:
            state["body"] = {}
        elif is_json:
            try:
                state["body"] = json.loads(body)
            except ValueError:
                raise HTTPException(status_code=400, detail="Invalid JSON body")
        else:
            state["body"] = dict(parse_qsl(body.decode("latin-1"), keep_blank_values=True))

        async def replay() -> Message:
            if messages:
                return messages.pop(0)
            return await receive()

        await self.app(scope, replay, send)

    async def _read(self, receive: Receive) -> tuple[list[Message], bytes]:
        messages: list[Message] = []
        chunks: list[bytes] = []
        size = 0
        while True:
            message = await receive()
            messages.append(message)
            if message["type"] != "http.request":
                break
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.limit:
                raise HTTPException(status_code=413, detail="Request body too large")
            chunks.append(chunk)
            if not message.get("more_body", False):
                break
        return messages, b"".join(chunks)


class MethodOverrideMiddleware:
    """Let POST requests declare their real verb with X-HTTP-Method-Override."""

    def __init__(self, app: ASGIApp, header: str = OVERRIDE_HEADER) -> None:
        self.app = app
        self.header = header.lower()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["method"] == "POST":
            override = Headers(scope=scope).get(self.header, "").strip().upper()
            if override in OVERRIDABLE_METHODS:
                scope = dict(scope, method=override)
                scope.setdefault("state", {})["original_method"] = "POST"
        await self.app(scope, receive, send)
