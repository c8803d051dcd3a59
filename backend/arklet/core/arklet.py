"""
The Arklet instance: options, hooks, storage, updates and the application
built from them.

Create one with `create_arklet(...)`; nothing is shared through module state.
Configure options, register hook handlers and updates during startup, then
`await arklet.initialize()` to get the ASGI application.
"""
import asyncio
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import uvicorn

from arklet import __version__
from arklet.config import Settings
from arklet.core import bootstrap
from arklet.core.db import Database
from arklet.core.hooks import DEFAULT_HOOKS, HookRegistry
from arklet.core.options import ConfigStore
from arklet.core.updates import UpdateRegistry
from arklet.pipeline.app import Application

logger = logging.getLogger("uvicorn.error")

DEFAULT_PORT = 3000

DEFAULT_OPTIONS = {
    "name": "Arklet",
    "brand": "Arklet",
    "admin path": "arklet",
    "compress": True,
    "headless": False,
    "logger": ":method :url :status :response-time ms",
    "auto update": False,
    "model prefix": None,
    "frame guard": "sameorigin",
    "session store": "cookie",
}


class Arklet:
    def __init__(self, options: Mapping[str, Any] | None = None, settings: Settings | None = None):
        self.config = ConfigStore(DEFAULT_OPTIONS)
        self.config.set("module root", Path.cwd())
        # Initialize environment defaults
        self.config.options((settings or Settings()).as_options())

        self.hooks = HookRegistry(DEFAULT_HOOKS)
        self.database = Database(self)
        self.updates = UpdateRegistry()
        self.redirects: dict[str, str] = {}
        self.app: Application | None = None
        self.version = __version__

        if options:
            self.config.options(options)

    # -------- options --------
    def set(self, key: str, value: Any) -> "Arklet":
        self.config.set(key, value)
        return self

    def get(self, key: str, default: Any = None) -> Any:
        return self.config.get(key, default)

    def options(self, values: Mapping[str, Any] | None = None) -> dict[str, Any]:
        return self.config.options(values)

    def get_path(self, key: str, default: str | None = None) -> Path | None:
        return self.config.get_path(key, default)

    # -------- hooks --------
    def on(self, name: str, handler=None, *, phase: str | None = None):
        """Shortcut for `self.hooks.on(...)`."""
        return self.hooks.on(name, handler, phase=phase)

    # -------- routing helpers --------
    def redirect(self, source: str | Mapping[str, str], target: str | None = None) -> "Arklet":
        """
        Add redirects: `redirect("/old", "/new")` or `redirect({"/old": "/new"})`.

        Must be called before `initialize()`; the redirect stage is assembled once.
        """
        if isinstance(source, Mapping):
            self.redirects.update(source)
        else:
            if target is None:
                raise ValueError("redirect target is required")
            self.redirects[source] = target
        return self

    def prefix_model(self, key: str) -> str:
        """
        Table name for a model, honouring the "model prefix" option.

        Example: with model prefix "blog", "Post" -> "blog_posts"
        """
        prefix = self.get("model prefix")
        name = f"{prefix}_{key}" if prefix else key
        return _pluralize(name.lower())

    def config_error(self, kind: str, message: str) -> None:
        """Log a configuration problem (only when request logging is enabled)."""
        if self.get("logger"):
            dashes = "\n" + "-" * 48 + "\n"
            logger.error("%s%s: %s:\n\n %s%s", dashes, self.get("name"), kind, message, dashes)

    # -------- lifecycle --------
    async def initialize(self) -> Application:
        return await bootstrap.initialize(self)

    async def apply_updates(self) -> list[str]:
        return await bootstrap.apply_updates(self)

    async def serve(self) -> None:
        """Initialize, apply updates if "auto update" is set, then serve with uvicorn."""
        app = await self.initialize()
        if self.get("auto update"):
            await self.apply_updates()

        ssl = {}
        if self.get("ssl") and self.get("ssl key") and self.get("ssl cert"):
            ssl = {"ssl_keyfile": self.get("ssl key"), "ssl_certfile": self.get("ssl cert")}
        config = uvicorn.Config(
            app,
            host=self.get("host") or "0.0.0.0",
            port=int(self.get("port") or DEFAULT_PORT),
            proxy_headers=False,
            log_level="debug" if self.get("env") == "development" else "info",
            **ssl,
        )
        logger.info("[server] %s %s ready on %s:%s", self.get("name"), self.version, config.host, config.port)
        await uvicorn.Server(config).serve()

    def start(self) -> None:
        asyncio.run(self.serve())


def _pluralize(name: str) -> str:
    if name.endswith("s"):
        return name
    if name.endswith("y") and name[-2:-1] not in "aeiou":
        return name[:-1] + "ies"
    return name + "s"


def create_arklet(options: Mapping[str, Any] | None = None, **kwargs: Any) -> Arklet:
    """
    Create an Arklet instance.

    Keyword options use underscores for spaces: `create_arklet(admin_path="cms")`.
    """
    merged = dict(options or {})
    merged.update(kwargs)
    return Arklet(merged)
