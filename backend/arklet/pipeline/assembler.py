"""
Request pipeline assembly.

`STAGES` is the fixed, ordered stage table. Each stage's predicate and build
function are evaluated once per assembly; a stage whose predicate is false is
left out without moving any other stage. Hook points are always present.

For "pre:static", "pre:bodyparser", "pre:session", "pre:routes" and
"pre:error", a callable stored under the same option name is called once at
assembly with a MiddlewareSlot, right before that hook point. The two
mechanisms are independent: the config function's middleware runs first, then
the registered hook handlers.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from fastapi import APIRouter
from starlette.middleware import Middleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.middleware.sessions import SessionMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from arklet.admin import server as admin_server
from arklet.core.errors import ConfigurationError
from arklet.middleware.access_log import AccessLogMiddleware
from arklet.middleware.body_parser import DEFAULT_LIMIT, BodyParserMiddleware, MethodOverrideMiddleware
from arklet.middleware.errors import ErrorHandlers
from arklet.middleware.hook_point import HookPointMiddleware
from arklet.middleware.language import DEFAULT_COOKIE, LanguageMiddleware
from arklet.middleware.redirects import RedirectsMiddleware
from arklet.middleware.routing import RouterMiddleware
from arklet.middleware.security import FrameGuardMiddleware, IPRestrictionMiddleware, frame_guard_action
from arklet.middleware.static import FaviconMiddleware, StaticFilesMiddleware
from arklet.middleware.view import ViewEngineMiddleware, ViewLocalsMiddleware
from arklet.pipeline.app import Pipeline
from arklet.pipeline.stage import MiddlewareSlot, Stage

if TYPE_CHECKING:
    from arklet.core.arklet import Arklet

logger = logging.getLogger(__name__)


# -------- predicates --------
def _option(key: str) -> Callable[[Arklet], bool]:
    def predicate(arklet: Arklet) -> bool:
        return bool(arklet.get(key))
    return predicate


def _callable_option(key: str) -> Callable[[Arklet], bool]:
    def predicate(arklet: Arklet) -> bool:
        return callable(arklet.get(key))
    return predicate


def _not_headless(arklet: Arklet) -> bool:
    return not arklet.get("headless")


def _language_enabled(arklet: Arklet) -> bool:
    return not (arklet.get("language options") or {}).get("disable")


# -------- builders --------
def _hook_stages(name: str, with_config: bool = True) -> tuple[Stage, ...]:
    """Optional direct config function, then the (always present) hook point."""

    def run_config(arklet: Arklet) -> list[Middleware]:
        slot = MiddlewareSlot(name)
        arklet.get(name)(slot)
        return slot.middleware

    def hook_point(arklet: Arklet) -> list[Middleware]:
        return [Middleware(HookPointMiddleware, hooks=arklet.hooks, name=name)]

    stages = (Stage(name, hook_point),)
    if with_config:
        stages = (Stage(f"{name} config", run_config, when=_callable_option(name)),) + stages
    return stages


def _trust_proxy(arklet: Arklet) -> list[Middleware]:
    trusted = arklet.get("trust proxy")
    if trusted is True:
        trusted = "*"
    return [Middleware(ProxyHeadersMiddleware, trusted_hosts=trusted)]


def _view_engine(arklet: Arklet) -> list[Middleware]:
    return [Middleware(ViewEngineMiddleware, engine=arklet.get("view engine"))]


def _view_locals(arklet: Arklet) -> list[Middleware]:
    shared = dict(arklet.get("locals") or {})
    shared.setdefault("brand", arklet.get("brand"))
    shared.setdefault("env", arklet.get("env"))
    return [Middleware(ViewLocalsMiddleware, **shared)]


def _ip_restriction(arklet: Arklet) -> list[Middleware]:
    return [Middleware(IPRestrictionMiddleware, ranges=arklet.get("allowed ip ranges"))]


def _compress(arklet: Arklet) -> list[Middleware]:
    return [Middleware(GZipMiddleware, **(arklet.get("compress options") or {}))]


def _favicon(arklet: Arklet) -> list[Middleware]:
    return [Middleware(FaviconMiddleware, path=arklet.get_path("favicon"))]


def _static(arklet: Arklet) -> list[Middleware]:
    value = arklet.get("static")
    directories = [value] if isinstance(value, str) else list(value)
    return [
        Middleware(StaticFilesMiddleware, directory=arklet.config.resolve_path(directory))
        for directory in directories
    ]


def _session(arklet: Arklet) -> list[Middleware]:
    return [Middleware(SessionMiddleware, **arklet.get("session settings"))]


def _logger(arklet: Arklet) -> list[Middleware]:
    options = arklet.get("logger options") or {}
    return [Middleware(AccessLogMiddleware, fmt=arklet.get("logger"), **options)]


def _logging_middleware(arklet: Arklet) -> list[Middleware]:
    value = arklet.get("logging middleware")
    if isinstance(value, Middleware):
        return [value]
    if not callable(value):
        raise ConfigurationError(f"'logging middleware' must be a Middleware or a factory(app), got {value!r}")
    return [Middleware(value)]


def _body_parser(arklet: Arklet) -> list[Middleware]:
    limit = (arklet.get("body parser options") or {}).get("limit", DEFAULT_LIMIT)
    return [Middleware(BodyParserMiddleware, limit=limit)]


def _method_override(arklet: Arklet) -> list[Middleware]:
    return [Middleware(MethodOverrideMiddleware)]


def _language(arklet: Arklet) -> list[Middleware]:
    options = arklet.get("language options") or {}
    return [
        Middleware(
            LanguageMiddleware,
            supported=options.get("supported languages"),
            cookie_name=options.get("language cookie", DEFAULT_COOKIE),
            default=options.get("default language"),
        )
    ]


def _frame_guard(arklet: Arklet) -> list[Middleware]:
    return [Middleware(FrameGuardMiddleware, action=frame_guard_action(arklet.get("frame guard")))]


def _react_routes(arklet: Arklet) -> list[Middleware]:
    routes = arklet.get("react routes")

    def configure(router: APIRouter) -> None:
        if callable(routes):
            routes(router)
        else:
            router.routes.extend(routes)

    return [Middleware(RouterMiddleware, configure=configure)]


def _routes(arklet: Arklet) -> list[Middleware]:
    return [Middleware(RouterMiddleware, configure=arklet.get("routes"))]


def _redirects(arklet: Arklet) -> list[Middleware]:
    return [Middleware(RedirectsMiddleware, redirects=arklet.redirects)]


def _error_handlers(arklet: Arklet) -> ErrorHandlers:
    return ErrorHandlers(
        not_found_handler=arklet.get("404"),
        error_handler=arklet.get("500"),
        brand=arklet.get("brand") or "Arklet",
        debug=arklet.get("env") == "development",
    )


STAGES: tuple[Stage, ...] = (
    # 1. request setup
    Stage("trust proxy", _trust_proxy, when=_option("trust proxy")),
    Stage("view engine", _view_engine, when=_option("view engine")),
    Stage("view locals", _view_locals),
    Stage("ip restriction", _ip_restriction, when=_option("allowed ip ranges")),
    # 2.
    Stage("compress", _compress, when=_option("compress")),
    # 3.
    *_hook_stages("pre:static"),
    # 4. static assets and session
    Stage("favicon", _favicon, when=_option("favicon")),
    Stage("admin static", admin_server.create_static_router, when=_not_headless),
    Stage("static", _static, when=_option("static")),
    *_hook_stages("pre:session"),
    Stage("session", _session, when=_option("session settings")),
    # 5.
    Stage("logger", _logger, when=_option("logger")),
    Stage("logging middleware", _logging_middleware, when=_option("logging middleware")),
    # 6.
    *_hook_stages("pre:logger", with_config=False),
    # 7.
    Stage("admin", admin_server.create_dynamic_router, when=_not_headless),
    # 8.
    *_hook_stages("pre:bodyparser"),
    Stage("body parser", _body_parser),
    Stage("method override", _method_override),
    # 9.
    Stage("language", _language, when=_language_enabled),
    # 10.
    Stage("frame guard", _frame_guard, when=_option("frame guard")),
    # 11.
    *_hook_stages("pre:routes"),
    Stage("react routes", _react_routes, when=_option("react routes")),
    Stage("routes", _routes, when=_callable_option("routes")),
    # 12.
    Stage("redirects", _redirects, when=lambda arklet: bool(arklet.redirects)),
    # 13.
    *_hook_stages("pre:error"),
    Stage("error handlers", _error_handlers, terminal=True),
)


@dataclass
class AssembledPipeline:
    stages: list[str]
    pipeline: Pipeline


class PipelineAssembler:
    def __init__(self, arklet: Arklet, stages: tuple[Stage, ...] = STAGES) -> None:
        self.arklet = arklet
        self.stages = stages

    def plan(self) -> list[str]:
        """Names of the stages the current options include, in order."""
        return [stage.name for stage in self.stages if stage.included(self.arklet)]

    def assemble(self) -> AssembledPipeline:
        included: list[str] = []
        middleware: list[Middleware] = []
        errors: ErrorHandlers | None = None

        for stage in self.stages:
            if not stage.included(self.arklet):
                continue
            included.append(stage.name)
            if stage.terminal:
                errors = stage.build(self.arklet)
                break
            middleware.extend(stage.build(self.arklet))

        if errors is None:
            raise ConfigurationError("Pipeline has no terminal error-handling stage")

        logger.info("Pipeline stages: %s", " -> ".join(included))
        return AssembledPipeline(stages=included, pipeline=Pipeline(middleware, errors))
