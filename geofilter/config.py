"""Configuration loading and validation for geofilter."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from threading import RLock
from typing import Any, List, Mapping, Optional

from .cache import CachePolicy
from .countries import parse_country_list
from .policies import FilterMode, FilterPolicy

log = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 10_000
DEFAULT_CACHE_TTL = 300
DEFAULT_UNKNOWN_VALUES = ("XX", "ZZ", "--")

_LOCAL_TYPES = {"maxmind", "mmdb", "local"}
_REMOTE_TYPES = {"remote", "http"}


class ConfigError(RuntimeError):
    """Configuration error exception

    This exception is raised whenever the configuration
    file is invalid. It is fatal and only raised while loading.
    """


@dataclass(slots=True)
class ListenConfig:
    host: str = "127.0.0.1"
    port: int = 8080


@dataclass(slots=True)
class AdminConfig:
    """Administration interface access

    Loopback clients may always use the admin endpoints; ``networks``
    lists additional CIDR ranges (typically the reverse proxy)."""

    networks: List[str] = field(default_factory=list)


@dataclass(slots=True)
class LoggingConfig:
    """Logging configuration

    Specifies the log level, an optional log file and if we should
    run an access log"""

    level: str = "INFO"
    access_log: bool = True
    file: Optional[str] = None


@dataclass(slots=True)
class ReloadConfig:
    """SIGHUP handler

    If enabled the SIGHUP handler allows to trigger reloading of the
    configuration file"""

    enable_sighup: bool = True


@dataclass(slots=True)
class ResolverConfig:
    type: str
    db_path: Optional[str] = None
    url: Optional[str] = None
    country_field: Optional[str] = None
    country_header: Optional[str] = None
    unknown_values: List[str] = field(default_factory=lambda: list(DEFAULT_UNKNOWN_VALUES))
    timeout_s: float = 2.0
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_local(self) -> bool:
        return self.type in _LOCAL_TYPES


@dataclass(slots=True)
class GeoFilterConfig:
    policy: FilterPolicy
    cache: CachePolicy
    resolver: ResolverConfig


@dataclass(slots=True)
class ServiceConfig:
    geoip_filter: GeoFilterConfig
    listen: ListenConfig = field(default_factory=ListenConfig)
    admin: AdminConfig = field(default_factory=AdminConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    reload: ReloadConfig = field(default_factory=ReloadConfig)


def _expect(obj: Mapping[str, Any], key: str, ctx: str) -> Any:
    if key not in obj:
        raise ConfigError(f"The `{key}` property is required in {ctx} configuration")
    return obj[key]


def _load_list(value: Any, ctx: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"Expected list for {ctx}")
    return value


def _load_mapping(value: Any, ctx: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"Expected mapping for {ctx}")
    return value


def _load_bool(raw: Mapping[str, Any], key: str, default: bool) -> bool:
    value = raw.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"The `{key}` property must be a boolean")
    return value


def _load_int(raw: Mapping[str, Any], key: str, default: int, minimum: int, unit: str = "") -> int:
    value = raw.get(key, default)
    suffix = f" ({unit})" if unit else ""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"`{key}` must be an integer{suffix}")
    if value < minimum:
        raise ConfigError(f"`{key}` must be an integer >= {minimum}{suffix}")
    return value


def _load_optional_str(raw: Mapping[str, Any], key: str) -> Optional[str]:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"The `{key}` property must be a string")
    return value


def _load_policy(raw: Mapping[str, Any]) -> FilterPolicy:
    mode_raw = _expect(raw, "mode", "geoip_filter")
    if not isinstance(mode_raw, str):
        raise ConfigError("The `mode` property must be a string")
    try:
        mode = FilterMode.parse(mode_raw)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    countries_raw = _expect(raw, "countries", "geoip_filter")
    if not isinstance(countries_raw, (str, list)):
        raise ConfigError("The `countries` property must be a string or a list")
    try:
        countries = parse_country_list(countries_raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid `countries` entry: {exc}") from exc
    if not countries:
        raise ConfigError("geoip_filter countries must contain at least one country code")

    return FilterPolicy(
        mode=mode,
        countries=frozenset(countries),
        allow_unknown=_load_bool(raw, "allow_unknown", False),
    )


def _load_cache_policy(raw: Mapping[str, Any]) -> CachePolicy:
    return CachePolicy(
        capacity=_load_int(raw, "cache_size", DEFAULT_CACHE_SIZE, 1),
        ttl=float(_load_int(raw, "cache_ttl", DEFAULT_CACHE_TTL, 0, "seconds")),
    )


def _load_resolver(raw: Mapping[str, Any]) -> ResolverConfig:
    resolver_raw = raw.get("resolver")
    db_path = _load_optional_str(raw, "db_path")

    if resolver_raw is None:
        if db_path is None:
            raise ConfigError("The `db_path` property is required in geoip_filter configuration")
        return ResolverConfig(type="maxmind", db_path=db_path)

    resolver_map = _load_mapping(resolver_raw, "geoip_filter.resolver")
    type_raw = _expect(resolver_map, "type", "geoip_filter.resolver")
    if not isinstance(type_raw, str):
        raise ConfigError("The resolver `type` property must be a string")
    resolver_type = type_raw.strip().lower()
    if resolver_type not in _LOCAL_TYPES | _REMOTE_TYPES:
        raise ConfigError(f"Unknown resolver type: {type_raw}")

    if resolver_type in _LOCAL_TYPES:
        path = _load_optional_str(resolver_map, "db_path") or db_path
        if path is None:
            raise ConfigError("The `db_path` property is required for a local database resolver")
        return ResolverConfig(type=resolver_type, db_path=path)

    url = _load_optional_str(resolver_map, "url")
    if not url:
        raise ConfigError("The `url` property is required for a remote resolver")
    if "{ip}" not in url:
        raise ConfigError("The resolver `url` must contain an `{ip}` placeholder")

    timeout_raw = resolver_map.get("timeout_s", 2.0)
    if isinstance(timeout_raw, bool) or not isinstance(timeout_raw, (int, float)) or timeout_raw <= 0:
        raise ConfigError("`timeout_s` must be a positive number (seconds)")

    unknown_raw = resolver_map.get("unknown_values")
    unknown_values = (
        [str(item).strip().upper() for item in _load_list(unknown_raw, "resolver.unknown_values")]
        if unknown_raw is not None
        else list(DEFAULT_UNKNOWN_VALUES)
    )

    headers = {
        str(key): str(value)
        for key, value in _load_mapping(resolver_map.get("headers"), "resolver.headers").items()
    }

    return ResolverConfig(
        type=resolver_type,
        url=url,
        country_field=_load_optional_str(resolver_map, "country_field"),
        country_header=_load_optional_str(resolver_map, "country_header"),
        unknown_values=unknown_values,
        timeout_s=float(timeout_raw),
        headers=headers,
    )


def load_geofilter_section(raw: Mapping[str, Any]) -> GeoFilterConfig:
    return GeoFilterConfig(
        policy=_load_policy(raw),
        cache=_load_cache_policy(raw),
        resolver=_load_resolver(raw),
    )


def load_config(path: Path) -> ServiceConfig:
    data = _load_json(path)
    if not isinstance(data, Mapping):
        raise ConfigError(f"{path.name} must contain an object")

    geoip_raw = _load_mapping(_expect(data, "geoip_filter", "top-level"), "geoip_filter")
    listen_raw = _load_mapping(data.get("listen"), "listen")
    admin_raw = _load_mapping(data.get("admin"), "admin")
    logging_raw = _load_mapping(data.get("logging"), "logging")
    reload_raw = _load_mapping(data.get("reload"), "reload")

    listen = ListenConfig(
        host=str(listen_raw.get("host", "127.0.0.1")),
        port=_load_int(listen_raw, "port", 8080, 1),
    )

    admin = AdminConfig(
        networks=[str(item) for item in _load_list(admin_raw.get("networks"), "admin.networks")],
    )

    logging_cfg = LoggingConfig(
        level=str(logging_raw.get("level", "INFO")),
        access_log=bool(logging_raw.get("access_log", True)),
        file=(
            str(logging_raw.get("file"))
            if logging_raw.get("file") is not None
            else None
        ),
    )

    reload_cfg = ReloadConfig(enable_sighup=bool(reload_raw.get("enable_sighup", True)))

    return ServiceConfig(
        geoip_filter=load_geofilter_section(geoip_raw),
        listen=listen,
        admin=admin,
        logging=logging_cfg,
        reload=reload_cfg,
    )


def _load_json(path: Path) -> Any:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(f"Configuration file missing: {path}") from exc
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc


class ConfigManager:
    """Thread-safe holder for the active configuration."""

    def __init__(self, path: Path):
        self._path = path
        self._lock = RLock()
        self._config: Optional[ServiceConfig] = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> ServiceConfig:
        """Load the configuration file and swap the active configuration."""
        with self._lock:
            log.debug("Loading configuration file %s", self._path)
            self._config = load_config(self._path)
            return self._config

    def current(self) -> ServiceConfig:
        with self._lock:
            if self._config is None:
                raise ConfigError("Configuration has not been loaded yet")
            return self._config


__all__ = [
    "AdminConfig",
    "ConfigError",
    "ConfigManager",
    "GeoFilterConfig",
    "ListenConfig",
    "LoggingConfig",
    "ReloadConfig",
    "ResolverConfig",
    "ServiceConfig",
    "load_config",
    "load_geofilter_section",
]
