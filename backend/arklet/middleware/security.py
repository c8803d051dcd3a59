"""
Security stages: X-Frame-Options header and client IP allow-listing.
"""
import ipaddress

from starlette.datastructures import MutableHeaders
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from arklet.core.errors import ConfigurationError

FRAME_GUARD_ACTIONS = {"sameorigin": "SAMEORIGIN", "deny": "DENY"}


def frame_guard_action(value) -> str:
    """
    Map the "frame guard" option onto an X-Frame-Options value.

    `True` means "sameorigin". Anything else than the known actions is a
    configuration error.
    """
    if value is True:
        return FRAME_GUARD_ACTIONS["sameorigin"]
    if isinstance(value, str) and value.lower() in FRAME_GUARD_ACTIONS:
        return FRAME_GUARD_ACTIONS[value.lower()]
    raise ConfigurationError(
        f"Invalid 'frame guard' option {value!r}; expected one of {sorted(FRAME_GUARD_ACTIONS)} or True"
    )


class FrameGuardMiddleware:
    def __init__(self, app: ASGIApp, action: str) -> None:
        self.app = app
        self.action = action

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)["X-Frame-Options"] = self.action
            await send(message)

        await self.app(scope, receive, send_wrapper)


def parse_ip_ranges(value) -> list:
    """Parse a comma separated string (or list) of addresses / CIDR ranges."""
    if isinstance(value, str):
        value = value.split(",")
    networks = []
    for item in value:
        item = item.strip()
        if not item:
            continue
        try:
            networks.append(ipaddress.ip_network(item, strict=False))
        except ValueError:
            raise ConfigurationError(f"Invalid entry in 'allowed ip ranges': {item!r}")
    return networks


class IPRestrictionMiddleware:
    """Reject clients whose address is outside every allowed range (403)."""

    def __init__(self, app: ASGIApp, ranges) -> None:
        self.app = app
        self.networks = parse_ip_ranges(ranges)

    def is_allowed(self, host: str | None) -> bool:
        if not host:
            return False
        try:
            address = ipaddress.ip_address(host)
        except ValueError:
            return False
        return any(address in network for network in self.networks)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        client = scope.get("client")
        if self.is_allowed(client[0] if client else None):
            await self.app(scope, receive, send)
            return

        if scope["type"] == "websocket":
            await send({"type": "websocket.close", "code": 1008})
            return
        response = PlainTextResponse("You are not allowed to access this resource", status_code=403)
        await response(scope, receive, send)
