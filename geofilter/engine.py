"""Country resolution, caching and the allow/block decision."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from threading import Lock
from typing import Any, Dict, Hashable, Optional

from .cache import CachePolicy, TtlLruCache
from .countries import UNKNOWN
from .policies import FilterPolicy, Verdict
from .resolvers import CountryResolver, IpAddress, ResolveError

log = logging.getLogger(__name__)


@dataclass(slots=True)
class DecisionCounters:
    hits: int = 0
    misses: int = 0
    resolver_errors: int = 0
    allowed: int = 0
    blocked: int = 0


class GeoDecisionEngine:
    """Single entry point used by the host for every request.

    The cache is the only shared mutable state. Resolver calls run outside
    the cache lock; two concurrent misses for the same address both resolve
    and the later insert wins.
    """

    def __init__(
        self,
        resolver: CountryResolver,
        policy: FilterPolicy,
        cache_policy: Optional[CachePolicy] = None,
        cache: Optional[TtlLruCache[Hashable, str]] = None,
    ):
        if cache is None:
            cache = TtlLruCache.from_policy(cache_policy or CachePolicy())
        self._resolver = resolver
        self._policy = policy
        self._cache = cache
        self._counters = DecisionCounters()
        self._counters_lock = Lock()

    @property
    def policy(self) -> FilterPolicy:
        return self._policy

    @property
    def cache(self) -> TtlLruCache[Hashable, str]:
        return self._cache

    def lookup_country(self, ip: IpAddress) -> str:
        """Return the country for ``ip``, consulting the cache first.

        Resolver failures are not cached and yield ``UNKNOWN`` for this call
        only.
        """

        country = self._cache.get(ip)
        if country is not None:
            self._count("hits")
            return country

        self._count("misses")
        try:
            country = self._resolver.resolve(ip)
        except ResolveError as exc:
            self._count("resolver_errors")
            log.warning("Country lookup for %s failed: %s", ip, exc)
            return UNKNOWN

        self._cache.put(ip, country)
        return country

    def decide(self, ip: IpAddress) -> Verdict:
        verdict = self._policy.evaluate(self.lookup_country(ip))
        self._count("allowed" if verdict.allowed else "blocked")
        return verdict

    def _count(self, name: str) -> None:
        with self._counters_lock:
            setattr(self._counters, name, getattr(self._counters, name) + 1)

    def clear_cache(self) -> None:
        self._cache.clear()

    def purge_expired(self) -> int:
        return self._cache.purge_expired()

    def stats(self) -> Dict[str, Any]:
        with self._counters_lock:
            counters = asdict(self._counters)
        return {
            "resolver": self._resolver.name,
            "mode": self._policy.mode.value,
            "cache": {
                "size": len(self._cache),
                "capacity": self._cache.capacity,
                "ttl": self._cache.ttl,
            },
            **counters,
        }

    def close(self) -> None:
        self._resolver.close()


__all__ = ["DecisionCounters", "GeoDecisionEngine"]
