"""
Terminal error-handling stage.

Answers requests that no earlier stage handled (404) and turns exceptions
raised by earlier stages into error responses. The "404" and "500" options
may hold callables that build the response instead of the default pages:

    arklet.set("404", lambda request: HTMLResponse("gone", status_code=404))
    arklet.set("500", lambda request, exc: JSONResponse({"error": str(exc)}, status_code=500))
"""
import html
import inspect
import logging

from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from arklet.core.errors import HandlerChainError

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Sorry, no page could be found at this address (404)"
ERROR_MESSAGE = "Sorry, an error occurred loading the page (500)"


def wrap_html_error(title: str, detail: str | None = None, brand: str = "Arklet") -> str:
    """Render a minimal standalone HTML error page."""
    body = f"<h1>{html.escape(title)}</h1>"
    if detail:
        body += f"<pre>{html.escape(detail)}</pre>"
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{html.escape(brand)}: {html.escape(title)}</title></head>"
        f"<body>{body}</body></html>"
    )


def unwrap_error(exc: BaseException) -> BaseException:
    """Return the handler's own error for failed hook chains."""
    while isinstance(exc, HandlerChainError):
        exc = exc.error
    return exc


def _wants_json(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return "application/json" in accept and "text/html" not in accept


class ErrorHandlers:
    def __init__(
        self,
        not_found_handler=None,
        error_handler=None,
        brand: str = "Arklet",
        debug: bool = False,
    ) -> None:
        self.not_found_handler = not_found_handler
        self.error_handler = error_handler
        self.brand = brand
        self.debug = debug

    async def not_found(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI endpoint at the very end of the pipeline."""
        if scope["type"] == "websocket":
            await send({"type": "websocket.close", "code": 1000})
            return
        if scope["type"] != "http":
            return
        request = Request(scope, receive)
        if self.not_found_handler is not None:
            response = await _call(self.not_found_handler, request)
        elif _wants_json(request):
            response = JSONResponse({"error": "not found", "path": request.url.path}, status_code=404)
        else:
            response = HTMLResponse(wrap_html_error(NOT_FOUND_MESSAGE, brand=self.brand), status_code=404)
        await response(scope, receive, send)

    async def handle(self, request: Request, exc: Exception) -> Response:
        """Build the response for an exception raised by an earlier stage."""
        error = unwrap_error(exc)

        if isinstance(error, RequestValidationError):
            return JSONResponse({"detail": jsonable_encoder(error.errors())}, status_code=422)

        if isinstance(error, HTTPException):
            if error.status_code == 404:
                if self.not_found_handler is not None:
                    return await _call(self.not_found_handler, request)
            if _wants_json(request):
                return JSONResponse({"detail": error.detail}, status_code=error.status_code, headers=error.headers)
            return HTMLResponse(
                wrap_html_error(str(error.detail), brand=self.brand),
                status_code=error.status_code,
                headers=error.headers,
            )

        hook = exc.hook if isinstance(exc, HandlerChainError) else None
        logger.error(
            "Error processing %s %s%s",
            request.method,
            request.url.path,
            f" (hook '{hook}')" if hook else "",
            exc_info=(type(error), error, error.__traceback__),
        )
        if self.error_handler is not None:
            return await _call(self.error_handler, request, error)
        detail = f"{type(error).__name__}: {error}" if self.debug else None
        if _wants_json(request):
            return JSONResponse({"error": "server error", "detail": detail}, status_code=500)
        return HTMLResponse(wrap_html_error(ERROR_MESSAGE, detail, brand=self.brand), status_code=500)


# set once an error handler has itself failed for this request
_UNANSWERED_KEY = "arklet.error_unanswered"


class ErrorBoundaryMiddleware:
    """
    Answers an exception escaping `app` through the `send` this layer was
    given, so every stage wrapped around it still sees the error response
    and can add its headers or log its status.

    The pipeline puts one boundary around each stage; the boundary closest
    to the failing stage answers.
    """

    def __init__(self, app: ASGIApp, errors: ErrorHandlers) -> None:
        self.app = app
        self.errors = errors

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if response_started or scope.get(_UNANSWERED_KEY):
                # too late to answer; let the server close the connection
                raise
            try:
                response = await self.errors.handle(Request(scope), exc)
            except Exception:
                scope[_UNANSWERED_KEY] = True
                raise
            await response(scope, receive, send)


async def _call(fn, *args) -> Response:
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result
