"""MaxMind database backed resolver."""
from __future__ import annotations

import logging
from typing import Any

import geoip2.database
import geoip2.errors
import maxminddb

from ..countries import UNKNOWN, normalize_country_code
from .base import CountryResolver, IpAddress, ResolveError

log = logging.getLogger(__name__)


class LocalDatabaseResolver(CountryResolver):
    """Resolves countries from a pre-loaded MMDB reader.

    The reader is opened once and shared by every thread; ``geoip2`` readers
    are safe for concurrent lookups.
    """

    name = "maxmind"

    def __init__(self, reader: Any):
        self._reader = reader
        database_type = str(reader.metadata().database_type)
        # City databases carry the country record too but reject country() calls.
        self._lookup = reader.city if "City" in database_type else reader.country
        self.database_type = database_type

    @classmethod
    def open(cls, db_path: str) -> "LocalDatabaseResolver":
        try:
            reader = geoip2.database.Reader(db_path)
        except (OSError, ValueError, maxminddb.InvalidDatabaseError) as exc:
            raise ResolveError(f"Failed to open MaxMind database at {db_path}: {exc}") from exc
        resolver = cls(reader)
        log.info("Loaded %s database from %s", resolver.database_type, db_path)
        return resolver

    def resolve(self, ip: IpAddress) -> str:
        try:
            record = self._lookup(ip)
        except geoip2.errors.AddressNotFoundError:
            return UNKNOWN
        except Exception as exc:
            raise ResolveError(f"MaxMind lookup failed for {ip}: {exc}") from exc

        iso_code = getattr(getattr(record, "country", None), "iso_code", None)
        try:
            return normalize_country_code(iso_code)
        except ValueError as exc:
            raise ResolveError(f"MaxMind returned malformed country for {ip}: {exc}") from exc

    def close(self) -> None:
        self._reader.close()


__all__ = ["LocalDatabaseResolver"]
