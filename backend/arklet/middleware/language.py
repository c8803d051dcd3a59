"""
Language negotiation stage.

Picks the request language from (in order) the language cookie, the
Accept-Language header, and the default language. The result is exposed as
`request.state.language` and echoed in the Content-Language response header.
"""
from starlette.datastructures import Headers, MutableHeaders
from starlette.requests import cookie_parser
from starlette.types import ASGIApp, Message, Receive, Scope, Send

DEFAULT_LANGUAGE = "en-US"
DEFAULT_COOKIE = "language"


def parse_accept_language(header: str) -> list[str]:
    """Return language tags from an Accept-Language header, best first."""
    weighted = []
    for position, part in enumerate(header.split(",")):
        tag, _, params = part.strip().partition(";")
        tag = tag.strip()
        if not tag or tag == "*":
            continue
        quality = 1.0
        for param in params.split(";"):
            key, _, value = param.strip().partition("=")
            if key == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        if quality > 0:
            weighted.append((-quality, position, tag))
    return [tag for _, _, tag in sorted(weighted)]


class LanguageMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        supported: list[str] | None = None,
        cookie_name: str = DEFAULT_COOKIE,
        default: str | None = None,
    ) -> None:
        self.app = app
        self.supported = list(supported or [DEFAULT_LANGUAGE])
        self.cookie_name = cookie_name
        self.default = default or self.supported[0]
        self._lookup = {lang.lower(): lang for lang in self.supported}

    def match(self, tag: str | None) -> str | None:
        if not tag:
            return None
        tag = tag.lower()
        if tag in self._lookup:
            return self._lookup[tag]
        primary = tag.split("-")[0]
        for lowered, lang in self._lookup.items():
            if lowered.split("-")[0] == primary:
                return lang
        return None

    def negotiate(self, headers: Headers) -> str:
        cookies = cookie_parser(headers.get("cookie", ""))
        chosen = self.match(cookies.get(self.cookie_name))
        if chosen:
            return chosen
        for tag in parse_accept_language(headers.get("accept-language", "")):
            chosen = self.match(tag)
            if chosen:
                return chosen
        return self.default

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        language = self.negotiate(Headers(scope=scope))
        scope.setdefault("state", {})["language"] = language

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers.setdefault("Content-Language", language)
            await send(message)

        await self.app(scope, receive, send_wrapper)
