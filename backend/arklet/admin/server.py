"""
Admin routers bound into the request pipeline under "/<admin path>".

- Static router: public admin assets (stylesheets, scripts, images).
- Dynamic router: JSON endpoints describing the running instance.
"""
from pathlib import Path

from fastapi import APIRouter
from starlette.middleware import Middleware

from arklet.middleware.routing import RouterMiddleware
from arklet.middleware.static import StaticFilesMiddleware

PUBLIC_DIR = Path(__file__).resolve().parent / "public"


def admin_prefix(arklet) -> str:
    return "/" + str(arklet.get("admin path") or "arklet").strip("/")


def create_static_router(arklet) -> list[Middleware]:
    return [Middleware(StaticFilesMiddleware, directory=PUBLIC_DIR, prefix=admin_prefix(arklet))]


def create_dynamic_router(arklet) -> list[Middleware]:
    def configure(router: APIRouter) -> None:
        @router.get("/api/info")
        async def info():
            """
            Describe this instance for the admin UI.

            Returns:
                dict: brand, version, environment, pipeline stages and hook names
            """
            return {
                "success": True,
                "data": {
                    "name": arklet.get("name"),
                    "brand": arklet.get("brand"),
                    "version": arklet.version,
                    "env": arklet.get("env"),
                    "stages": arklet.app.stages if arklet.app else [],
                    "hooks": sorted(arklet.hooks.declared),
                },
            }

    return [Middleware(RouterMiddleware, configure=configure, prefix=admin_prefix(arklet))]
