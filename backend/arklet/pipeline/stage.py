"""
Pipeline stage declaration.

A stage pairs a predicate over the Arklet instance with a build function that
returns the middleware to insert at that position. Both are evaluated once,
when the pipeline is assembled.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from starlette.middleware import Middleware

if TYPE_CHECKING:
    from arklet.core.arklet import Arklet

Predicate = Callable[["Arklet"], bool]
BuildFn = Callable[["Arklet"], Any]


def always(arklet: Arklet) -> bool:
    return True


@dataclass(frozen=True)
class Stage:
    """
    Attributes:
        name: Stage identifier, reported by `PipelineAssembler.plan()`
        build: Returns a list of Middleware (or, for the terminal stage, the
               ErrorHandlers that end the pipeline)
        when: Inclusion predicate
        terminal: Marks the last stage, which ends the chain
    """

    name: str
    build: BuildFn
    when: Predicate = always
    terminal: bool = False

    def included(self, arklet: Arklet) -> bool:
        return bool(self.when(arklet))


class MiddlewareSlot:
    """
    Handed to direct "pre:*" config functions at assembly time.

    Middleware added with `use()` is inserted at the slot's position, before
    the hook chain of the same name.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.middleware: list[Middleware] = []

    def use(self, middleware: Any, *args: Any, **kwargs: Any) -> MiddlewareSlot:
        """
        Add a middleware class (or any `factory(app) -> app`) with its options,
        or a ready-made `Middleware` entry.
        """
        if isinstance(middleware, Middleware):
            self.middleware.append(middleware)
        else:
            self.middleware.append(Middleware(middleware, *args, **kwargs))
        return self
