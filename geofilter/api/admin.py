"""
    Admin and stats endpoints.

    Those endpoints are exposed to loopback clients and to the networks listed
    under ``admin.networks``. They expose decision statistics, allow to flush
    the resolution cache and to reload the configuration (as SIGHUP does).
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from ..config import ConfigError
from ..ipacl import is_allowed
from ..runtime import GeoFilterRuntime
from .v1 import get_runtime

router = APIRouter(prefix="/admin")


def _require_admin_access(request: Request, runtime: GeoFilterRuntime) -> None:
    client = request.client
    if client is None:
        raise HTTPException(status_code=403, detail="Forbidden")
    if not is_allowed(client.host, runtime.config.admin.networks):
        raise HTTPException(status_code=403, detail="Forbidden")


@router.get("/stats")
async def stats(request: Request, runtime: GeoFilterRuntime = Depends(get_runtime)):
    _require_admin_access(request, runtime)
    return JSONResponse(runtime.stats())


@router.post("/cache/clear")
async def clear_cache(request: Request, runtime: GeoFilterRuntime = Depends(get_runtime)):
    _require_admin_access(request, runtime)
    runtime.engine().clear_cache()
    return JSONResponse({"status": "cache cleared"})


@router.post("/cache/purge")
async def purge_cache(request: Request, runtime: GeoFilterRuntime = Depends(get_runtime)):
    _require_admin_access(request, runtime)
    removed = runtime.engine().purge_expired()
    return JSONResponse({"status": f"purged {removed} expired entries", "removed": removed})


@router.post("/reload")
async def reload(request: Request, runtime: GeoFilterRuntime = Depends(get_runtime)):
    _require_admin_access(request, runtime)
    try:
        await runtime.reload()
    except ConfigError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return JSONResponse({"status": "reloaded"})


__all__ = ["router"]
