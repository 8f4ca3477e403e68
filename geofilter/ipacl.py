"""Client address helpers and CIDR-based ACL checks."""
from __future__ import annotations

import ipaddress
from typing import Iterable, Optional, Union

IPAddressObj = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def canonical_ip(value: str) -> Optional[IPAddressObj]:
    """Parse ``value`` and unwrap IPv4-mapped IPv6 addresses.

    ``::ffff:203.0.113.7`` becomes ``203.0.113.7`` so both forms share a
    cache entry and a database record. Returns None when unparsable.
    """
    try:
        ip_obj = ipaddress.ip_address(value.strip())
    except (AttributeError, ValueError):
        return None
    if isinstance(ip_obj, ipaddress.IPv6Address) and ip_obj.ipv4_mapped is not None:
        return ip_obj.ipv4_mapped
    return ip_obj


def is_allowed(remote_ip: str, allowlist: Iterable[str]) -> bool:
    """Return True if the IP is loopback or inside one of the CIDRs."""
    ip_obj = canonical_ip(remote_ip)
    if ip_obj is None:
        return False
    if ip_obj.is_loopback:
        return True

    for cidr in allowlist:
        try:
            network = ipaddress.ip_network(cidr, strict=False)
        except ValueError:
            continue
        if ip_obj in network:
            return True
    return False


__all__ = ["IPAddressObj", "canonical_ip", "is_allowed"]
