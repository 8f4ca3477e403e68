"""ASGI application factory."""

from __future__ import annotations

import os
from pathlib import Path

from fastapi import FastAPI

from .api import admin as admin_router
from .api import v1 as v1_router
from .log import configure_logging
from .runtime import GeoFilterRuntime
from .signals import install_signal_handlers


def resolve_config_path(config_path: str | os.PathLike[str] | None) -> Path:
    if config_path is not None:
        return Path(config_path)
    env_path = os.environ.get("GEOFILTER_CONFIG")
    if env_path:
        return Path(env_path)
    return Path.cwd() / "geofilter.json"


def create_app(config_path: str | os.PathLike[str] | None = None) -> FastAPI:
    runtime = GeoFilterRuntime(resolve_config_path(config_path))

    app = FastAPI(
        title="geofilter",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url="/openapi.json",
    )

    app.include_router(v1_router.router)
    app.include_router(admin_router.router)

    app.state.runtime = runtime

    @app.on_event("startup")
    async def on_startup() -> None:
        await runtime.initialize()
        configure_logging(runtime.config.logging)
        install_signal_handlers(runtime, runtime.config.reload.enable_sighup)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await runtime.shutdown()

    return app


__all__ = ["create_app", "resolve_config_path"]
