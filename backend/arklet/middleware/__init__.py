"""
ASGI middleware used as pipeline stages.
Each class takes the next ASGI app as its first argument, so every stage can
be listed as a Starlette `Middleware(cls, **options)` entry.
"""
from arklet.middleware.access_log import AccessLogMiddleware
from arklet.middleware.body_parser import BodyParserMiddleware, MethodOverrideMiddleware
from arklet.middleware.errors import ErrorBoundaryMiddleware, ErrorHandlers
from arklet.middleware.hook_point import HookPointMiddleware
from arklet.middleware.language import LanguageMiddleware
from arklet.middleware.redirects import RedirectsMiddleware
from arklet.middleware.routing import RouterMiddleware
from arklet.middleware.security import FrameGuardMiddleware, IPRestrictionMiddleware
from arklet.middleware.static import FaviconMiddleware, StaticFilesMiddleware
from arklet.middleware.view import ViewEngineMiddleware, ViewLocalsMiddleware

__all__ = [
    "AccessLogMiddleware",
    "BodyParserMiddleware",
    "ErrorBoundaryMiddleware",
    "ErrorHandlers",
    "FaviconMiddleware",
    "FrameGuardMiddleware",
    "HookPointMiddleware",
    "IPRestrictionMiddleware",
    "LanguageMiddleware",
    "MethodOverrideMiddleware",
    "RedirectsMiddleware",
    "RouterMiddleware",
    "StaticFilesMiddleware",
    "ViewEngineMiddleware",
    "ViewLocalsMiddleware",
]
