from __future__ import annotations

from typing import Callable, Dict

from ..config import ResolverConfig
from .base import CountryResolver, IpAddress, ResolveError
from .local import LocalDatabaseResolver
from .remote import RemoteApiResolver


def _create_local(definition: ResolverConfig) -> CountryResolver:
    if not definition.db_path:
        raise ValueError("Local database resolver requires db_path")
    return LocalDatabaseResolver.open(definition.db_path)


def _create_remote(definition: ResolverConfig) -> CountryResolver:
    if not definition.url:
        raise ValueError("Remote resolver requires url")
    return RemoteApiResolver(
        definition.url,
        country_field=definition.country_field,
        country_header=definition.country_header,
        unknown_values=definition.unknown_values,
        timeout_s=definition.timeout_s,
        headers=definition.headers,
    )


_RESOLVER_TYPES: Dict[str, Callable[[ResolverConfig], CountryResolver]] = {
    "maxmind": _create_local,
    "mmdb": _create_local,
    "local": _create_local,
    "remote": _create_remote,
    "http": _create_remote,
}


def create_resolver(definition: ResolverConfig) -> CountryResolver:
    try:
        factory = _RESOLVER_TYPES[definition.type.lower()]
    except KeyError as exc:
        raise ValueError(f"Unknown resolver type: {definition.type}") from exc
    return factory(definition)


__all__ = [
    "CountryResolver",
    "IpAddress",
    "LocalDatabaseResolver",
    "RemoteApiResolver",
    "ResolveError",
    "create_resolver",
]
