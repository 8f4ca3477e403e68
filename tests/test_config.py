import json
from pathlib import Path

import pytest

from geofilter.config import ConfigError, ConfigManager, load_config
from geofilter.policies import FilterMode


def write_config(tmp_path: Path, geoip_filter, **extra) -> Path:
    data = {"geoip_filter": geoip_filter, **extra}
    path = tmp_path / "geofilter.json"
    path.write_text(json.dumps(data))
    return path


def test_load_minimal_config_with_db_path(tmp_path: Path):
    path = write_config(
        tmp_path,
        {"mode": "Whitelist", "countries": "vn, us,", "db_path": "/var/lib/GeoIP/GeoLite2-Country.mmdb"},
    )
    cfg = load_config(path)
    geo = cfg.geoip_filter
    assert geo.policy.mode is FilterMode.WHITELIST
    assert geo.policy.countries == frozenset({"VN", "US"})
    assert geo.policy.allow_unknown is False
    assert geo.cache.capacity == 10000
    assert geo.cache.ttl == 300
    assert geo.resolver.type == "maxmind"
    assert geo.resolver.is_local
    assert cfg.listen.host == "127.0.0.1"
    assert cfg.listen.port == 8080


def test_load_full_config_with_remote_resolver(tmp_path: Path):
    path = write_config(
        tmp_path,
        {
            "mode": "blacklist",
            "countries": ["ru", "kp"],
            "allow_unknown": True,
            "cache_size": 500,
            "cache_ttl": 0,
            "resolver": {
                "type": "remote",
                "url": "https://geo.example/json/{ip}",
                "country_field": "countryCode",
                "timeout_s": 1.5,
                "headers": {"Authorization": "Bearer token"},
                "unknown_values": ["xx"],
            },
        },
        listen={"host": "0.0.0.0", "port": 9090},
        admin={"networks": ["10.0.0.0/8"]},
        logging={"level": "DEBUG", "access_log": False},
        reload={"enable_sighup": False},
    )
    cfg = load_config(path)
    geo = cfg.geoip_filter
    assert geo.policy.mode is FilterMode.BLACKLIST
    assert geo.policy.allow_unknown is True
    assert geo.cache.capacity == 500
    assert geo.cache.ttl == 0
    assert geo.resolver.url == "https://geo.example/json/{ip}"
    assert geo.resolver.timeout_s == 1.5
    assert geo.resolver.headers == {"Authorization": "Bearer token"}
    assert geo.resolver.unknown_values == ["XX"]
    assert cfg.listen.port == 9090
    assert cfg.admin.networks == ["10.0.0.0/8"]
    assert cfg.reload.enable_sighup is False


@pytest.mark.parametrize(
    "geoip_filter, message",
    [
        ({"countries": "US", "db_path": "x"}, "mode"),
        ({"mode": "greylist", "countries": "US", "db_path": "x"}, "Invalid GeoIP mode"),
        ({"mode": "whitelist", "db_path": "x"}, "countries"),
        ({"mode": "whitelist", "countries": " , ", "db_path": "x"}, "at least one country"),
        ({"mode": "whitelist", "countries": "USA", "db_path": "x"}, "countries"),
        ({"mode": "whitelist", "countries": "US", "db_path": "x", "allow_unknown": "yes"}, "allow_unknown"),
        ({"mode": "whitelist", "countries": "US", "db_path": "x", "cache_size": 0}, "cache_size"),
        ({"mode": "whitelist", "countries": "US", "db_path": "x", "cache_size": "big"}, "cache_size"),
        ({"mode": "whitelist", "countries": "US", "db_path": "x", "cache_ttl": -5}, "cache_ttl"),
        ({"mode": "whitelist", "countries": "US"}, "db_path"),
        ({"mode": "whitelist", "countries": "US", "resolver": {"type": "remote"}}, "url"),
        (
            {"mode": "whitelist", "countries": "US", "resolver": {"type": "remote", "url": "https://geo.example/"}},
            "placeholder",
        ),
        ({"mode": "whitelist", "countries": "US", "resolver": {"type": "telepathy"}}, "Unknown resolver type"),
    ],
)
def test_invalid_geoip_filter_rejected(tmp_path: Path, geoip_filter, message):
    path = write_config(tmp_path, geoip_filter)
    with pytest.raises(ConfigError, match=message):
        load_config(path)


def test_missing_section_rejected(tmp_path: Path):
    path = tmp_path / "geofilter.json"
    path.write_text(json.dumps({"listen": {}}))
    with pytest.raises(ConfigError, match="geoip_filter"):
        load_config(path)


def test_missing_file_and_bad_json(tmp_path: Path):
    with pytest.raises(ConfigError, match="missing"):
        load_config(tmp_path / "nope.json")
    bad = tmp_path / "bad.json"
    bad.write_text("{")
    with pytest.raises(ConfigError, match="Invalid JSON"):
        load_config(bad)


def test_config_manager_requires_load(tmp_path: Path):
    path = write_config(tmp_path, {"mode": "whitelist", "countries": "US", "db_path": "x"})
    manager = ConfigManager(path)
    with pytest.raises(ConfigError):
        manager.current()
    loaded = manager.load()
    assert manager.current() is loaded
