from __future__ import annotations

import ipaddress
from typing import Union

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address, str]


class ResolveError(RuntimeError):
    """The backend could not answer (unreachable, malformed reply, lookup fault).

    Distinct from a successful lookup that found no country, which yields
    ``UNKNOWN``.
    """


class CountryResolver:
    """Abstract base class for country lookup backends."""

    name = "resolver"

    def resolve(self, ip: IpAddress) -> str:
        """Return a normalized country code or ``UNKNOWN``; raise ``ResolveError`` on failure."""
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


__all__ = ["CountryResolver", "IpAddress", "ResolveError"]
