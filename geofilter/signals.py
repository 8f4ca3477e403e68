"""Signal handling utilities."""
from __future__ import annotations

import asyncio
import signal
import logging

from .runtime import GeoFilterRuntime

log = logging.getLogger(__name__)

# SIGTERM is left to uvicorn; the runtime is released from the shutdown hook.

def install_signal_handlers(runtime: GeoFilterRuntime, enable_reload: bool) -> None:
    if not enable_reload:
        return

    loop = asyncio.get_running_loop()

    def _sighup_handler():
        log.info("SIGHUP received; reloading GeoIP filter configuration")
        asyncio.create_task(_reload(runtime))

    try:
        loop.add_signal_handler(signal.SIGHUP, _sighup_handler)
    except (AttributeError, NotImplementedError, RuntimeError):  # pragma: no cover - Windows, non-main thread
        log.debug("SIGHUP reload not supported on this platform")


async def _reload(runtime: GeoFilterRuntime) -> None:
    try:
        await runtime.reload()
    except Exception:
        log.exception("Configuration reload failed; keeping previous configuration")

__all__ = ["install_signal_handlers"]
