"""Runtime wiring for the geofilter service."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .config import ConfigError, ConfigManager, GeoFilterConfig, ServiceConfig
from .engine import GeoDecisionEngine
from .policies import Verdict
from .resolvers import IpAddress, ResolveError, create_resolver

log = logging.getLogger(__name__)


def build_engine(config: GeoFilterConfig) -> GeoDecisionEngine:
    """Open the configured resolver and wrap it in a decision engine."""
    try:
        resolver = create_resolver(config.resolver)
    except (ResolveError, ValueError) as exc:
        raise ConfigError(str(exc)) from exc
    return GeoDecisionEngine(resolver, config.policy, cache_policy=config.cache)


class GeoFilterRuntime:
    def __init__(self, config_path: Path):
        self._config_manager = ConfigManager(config_path)
        self._config: Optional[ServiceConfig] = None
        self._engine: Optional[GeoDecisionEngine] = None
        self._lock = asyncio.Lock()

    @property
    def config(self) -> ServiceConfig:
        if self._config is None:
            raise ConfigError("Configuration not loaded")
        return self._config

    def engine(self) -> GeoDecisionEngine:
        if self._engine is None:
            raise RuntimeError("Decision engine not initialized")
        return self._engine

    async def initialize(self) -> None:
        async with self._lock:
            config = self._config_manager.load()
            self._apply(config, build_engine(config.geoip_filter))

    async def reload(self) -> None:
        async with self._lock:
            config = self._config_manager.load()
            engine = build_engine(config.geoip_filter)
            log.info("Configuration reload requested")
            previous = self._engine
            self._apply(config, engine)
            if previous is not None:
                previous.close()

    async def shutdown(self) -> None:
        async with self._lock:
            if self._engine is not None:
                self._engine.close()
            self._engine = None
            self._config = None

    def _apply(self, config: ServiceConfig, engine: GeoDecisionEngine) -> None:
        self._config = config
        self._engine = engine
        policy = config.geoip_filter.policy
        log.info(
            "GeoIP filter ready: mode=%s countries=%s allow_unknown=%s resolver=%s",
            policy.mode.value,
            ",".join(sorted(policy.countries)),
            policy.allow_unknown,
            config.geoip_filter.resolver.type,
        )

    async def decide(self, ip: IpAddress) -> Verdict:
        engine = self.engine()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, engine.decide, ip)

    def stats(self) -> Dict[str, Any]:
        if self._engine is None:
            return {}
        return self._engine.stats()


__all__ = ["GeoFilterRuntime", "build_engine"]
