"""HTTP lookup service backed resolver."""
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional
from urllib.parse import quote

import httpx

from ..countries import UNKNOWN, normalize_country_code
from .base import CountryResolver, IpAddress, ResolveError

log = logging.getLogger(__name__)


class RemoteApiResolver(CountryResolver):
    """Looks up the country through an HTTP API.

    ``url_template`` contains an ``{ip}`` placeholder. The country is read
    from ``country_header`` if set, else from the dotted ``country_field``
    path of a JSON body, else the whole plain-text body is the code.
    """

    name = "remote"

    def __init__(
        self,
        url_template: str,
        *,
        country_field: Optional[str] = None,
        country_header: Optional[str] = None,
        unknown_values: Iterable[str] = ("XX", "ZZ", "--"),
        timeout_s: float = 2.0,
        headers: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if "{ip}" not in url_template:
            raise ValueError("url_template must contain an {ip} placeholder")
        self._url_template = url_template
        self._field_path = country_field.split(".") if country_field else []
        self._country_header = country_header
        self._unknown_values = {value.strip().upper() for value in unknown_values}
        self._client = httpx.Client(timeout=timeout_s, headers=dict(headers or {}) or None, transport=transport)

    def url_for(self, ip: IpAddress) -> str:
        return self._url_template.replace("{ip}", quote(str(ip), safe=":"))

    def resolve(self, ip: IpAddress) -> str:
        url = self.url_for(ip)
        try:
            response = self._client.get(url)
        except Exception as exc:
            # Includes RuntimeError from a client closed by a reload.
            raise ResolveError(f"Lookup request for {ip} failed: {exc}") from exc

        if not response.is_success:
            raise ResolveError(f"Lookup service returned {response.status_code} for {ip}")

        raw = self._extract(response)
        if raw is None:
            return UNKNOWN
        if not isinstance(raw, str):
            raise ResolveError(f"Lookup service returned non-string country for {ip}: {raw!r}")
        if raw.strip().upper() in self._unknown_values:
            return UNKNOWN
        try:
            return normalize_country_code(raw)
        except ValueError as exc:
            raise ResolveError(f"Lookup service returned malformed country for {ip}: {exc}") from exc

    def _extract(self, response: httpx.Response) -> Any:
        if self._country_header:
            return response.headers.get(self._country_header)
        if not self._field_path:
            return response.text
        try:
            value: Any = response.json()
        except ValueError as exc:
            raise ResolveError(f"Invalid JSON from lookup service: {exc}") from exc
        for depth, part in enumerate(self._field_path):
            if not isinstance(value, Mapping):
                path = ".".join(self._field_path[:depth]) or "<body>"
                raise ResolveError(f"Lookup service returned non-object at {path}: {value!r}")
            value = value.get(part)
        return value

    def close(self) -> None:
        self._client.close()


__all__ = ["RemoteApiResolver"]
