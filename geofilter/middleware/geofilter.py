from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, Union

# We use starlette since FastAPI is built on starlette and so it's always
# already installed

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp

from ..countries import UNKNOWN
from ..engine import GeoDecisionEngine
from ..ipacl import canonical_ip
from ..log import log_blocked
from ..policies import Verdict

log = logging.getLogger(__name__)

EngineSource = Union[GeoDecisionEngine, Callable[[], GeoDecisionEngine]]


class GeoFilterMiddleware(BaseHTTPMiddleware):
    """Answers 403 for requests whose client country the policy blocks.

    ``engine`` is either an engine or a zero-argument callable returning the
    current one, so a reloaded runtime is picked up without rebuilding the
    middleware stack.
    """

    def __init__(self, app: ASGIApp, engine: EngineSource, exclude_paths: Iterable[str] = ()):
        super().__init__(app)
        self._engine_source = engine
        self._exclude_paths = tuple(exclude_paths)

    def _engine(self) -> GeoDecisionEngine:
        if isinstance(self._engine_source, GeoDecisionEngine):
            return self._engine_source
        return self._engine_source()

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:
        if request.url.path.startswith(self._exclude_paths):
            return await call_next(request)

        engine = self._engine()
        client_ip = canonical_ip(request.client.host) if request.client is not None else None
        if client_ip is None:
            verdict = engine.policy.evaluate(UNKNOWN)
        else:
            loop = asyncio.get_running_loop()
            verdict = await loop.run_in_executor(None, engine.decide, client_ip)

        request.state.geoip_verdict = verdict
        if verdict.allowed:
            return await call_next(request)

        log_blocked(log, client_ip or "<unknown>", verdict, engine.policy)
        return forbidden_response(verdict)


def forbidden_response(verdict: Verdict) -> Response:
    return PlainTextResponse("Forbidden", status_code=403, headers={"X-GeoIP-Country": verdict.country})


__all__ = ["GeoFilterMiddleware", "forbidden_response"]
