"""Decision endpoints.

``/v1/check`` is meant for reverse proxies doing sub-request authorization
(nginx ``auth_request``): 204 allows, 403 blocks. ``/v1/decide`` returns the
verdict for an explicit address as JSON.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse

from ..countries import UNKNOWN
from ..ipacl import IPAddressObj, canonical_ip, is_allowed
from ..log import log_blocked
from ..runtime import GeoFilterRuntime

log = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")


async def get_runtime(request: Request) -> GeoFilterRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=503, detail="GeoIP filter not ready")
    return runtime


def _client_address(request: Request, runtime: GeoFilterRuntime, real_ip: Optional[str]) -> Optional[IPAddressObj]:
    peer = request.client.host if request.client is not None else None
    if real_ip and peer is not None and is_allowed(peer, runtime.config.admin.networks):
        return canonical_ip(real_ip)
    if peer is None:
        return None
    return canonical_ip(peer)


@router.get("/check")
async def check(
    request: Request,
    x_real_ip: Optional[str] = Header(default=None),
    runtime: GeoFilterRuntime = Depends(get_runtime),
):
    ip = _client_address(request, runtime, x_real_ip)
    if ip is None:
        verdict = runtime.engine().policy.evaluate(UNKNOWN)
    else:
        verdict = await runtime.decide(ip)

    headers = {"X-GeoIP-Country": verdict.country}
    if verdict.allowed:
        return Response(status_code=204, headers=headers)

    log_blocked(log, ip or "<unknown>", verdict, runtime.engine().policy)
    return Response(status_code=403, headers=headers)


@router.get("/decide")
async def decide(
    ip: str = Query(...),
    runtime: GeoFilterRuntime = Depends(get_runtime),
):
    address = canonical_ip(ip)
    if address is None:
        raise HTTPException(status_code=400, detail=f"Invalid IP address: {ip}")
    verdict = await runtime.decide(address)
    return JSONResponse(
        {
            "ip": str(address),
            "allowed": verdict.allowed,
            "country": verdict.country,
        }
    )


__all__ = ["router"]
