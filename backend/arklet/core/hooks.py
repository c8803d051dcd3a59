"""
Named extension points with ordered, sequential handler chains.

A registry is built with a fixed allow-list of hook names. Handlers are
registered against those names and invoked strictly in registration order;
each handler must finish (return, or finish awaiting) before the next one
starts. Raising from a handler aborts the chain and the exception reaches the
caller of `invoke` unchanged.

Declared bare names ("updates") also allow their phased forms
("pre:updates", "post:updates"). Qualified names ("pre:static") allow only
themselves.

Registration (`on`, `declare`) belongs to the startup phase. Registering
handlers while requests are being processed is not supported.
"""
from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from arklet.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

PHASES = ("pre", "post")

HookHandler = Callable[..., Any]

DEFAULT_HOOKS = (
    "pre:static",
    "pre:bodyparser",
    "pre:session",
    "pre:routes",
    "pre:render",
    "pre:logger",
    "pre:error",
    "updates",
    "signin",
    "signout",
)


class HookRegistry:
    """Allow-listed hook names mapped to ordered handler lists."""

    def __init__(self, names: Iterable[str] = DEFAULT_HOOKS):
        self._declared: frozenset[str] = frozenset()
        self._handlers: dict[str, list[HookHandler]] = {}
        self._sealed = False
        self.declare(*names)
        self._sealed = True

    @property
    def declared(self) -> frozenset[str]:
        return self._declared

    def declare(self, *names: str) -> None:
        """
        Declare hook names.

        Only the constructor may add names. Once sealed, re-declaring a known
        name is accepted and any new name raises ConfigurationError.
        """
        new = {n for n in names if n not in self._declared}
        if not new:
            return
        if self._sealed:
            raise ConfigurationError(
                f"Hook allow-list is sealed; cannot declare {sorted(new)}"
            )
        for name in new:
            if not name or not isinstance(name, str):
                raise ConfigurationError(f"Invalid hook name: {name!r}")
        self._declared = self._declared | new

    def is_declared(self, name: str) -> bool:
        if name in self._declared:
            return True
        phase, sep, base = name.partition(":")
        return bool(sep) and phase in PHASES and base in self._declared and ":" not in base

    def qualify(self, name: str, phase: str | None = None) -> str:
        """Return the qualified hook name, raising if it is not allowed."""
        if phase is not None:
            if phase not in PHASES:
                raise ConfigurationError(f"Unknown hook phase '{phase}' (expected one of {PHASES})")
            name = f"{phase}:{name}"
        if not self.is_declared(name):
            raise ConfigurationError(f"Hook '{name}' is not declared")
        return name

    def on(self, name: str, handler: HookHandler | None = None, *, phase: str | None = None):
        """
        Register `handler` for hook `name` (optionally in `phase`).

        Usable as a decorator:

            @hooks.on("pre:routes")
            async def count(request):
                ...
        """
        qualified = self.qualify(name, phase)

        if handler is None:
            def decorator(fn: HookHandler) -> HookHandler:
                self._add(qualified, fn)
                return fn
            return decorator

        self._add(qualified, handler)
        return handler

    def _add(self, qualified: str, handler: HookHandler) -> None:
        if not callable(handler):
            raise ConfigurationError(f"Handler for hook '{qualified}' is not callable: {handler!r}")
        self._handlers.setdefault(qualified, []).append(handler)
        logger.debug("Registered handler %s for hook '%s'", getattr(handler, "__name__", handler), qualified)

    def handlers(self, name: str, phase: str | None = None) -> list[HookHandler]:
        qualified = self.qualify(name, phase)
        return list(self._handlers.get(qualified, []))

    def invoke(self, name: str, *args: Any, **kwargs: Any) -> Awaitable[None]:
        """
        Run every handler registered for `name`, in order.

        The name is validated before anything runs, so an undeclared hook
        raises ConfigurationError from this call itself. The returned
        awaitable completes when the last handler has finished, or re-raises
        the first handler error (later handlers are not run).
        """
        qualified = self.qualify(name)
        # snapshot: handlers added while the chain runs are not picked up
        chain = tuple(self._handlers.get(qualified, ()))
        return self._run_chain(qualified, chain, args, kwargs)

    async def _run_chain(
        self,
        name: str,
        chain: tuple[HookHandler, ...],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> None:
        for index, handler in enumerate(chain):
            try:
                result = handler(*args, **kwargs)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.debug(
                    "Hook '%s' aborted at handler %d/%d: %s: %s",
                    name, index + 1, len(chain), type(exc).__name__, exc,
                )
                raise
