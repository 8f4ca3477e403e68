"""Console entry point for geofilter."""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

import httpx
import uvicorn

from .app import create_app, resolve_config_path
from .config import ConfigError, ServiceConfig, load_config
from .ipacl import canonical_ip
from .runtime import build_engine


def _load(args: argparse.Namespace) -> ServiceConfig:
    try:
        return load_config(resolve_config_path(getattr(args, "config", None)))
    except ConfigError as exc:
        print(f"[error] {exc}", file=sys.stderr)
        sys.exit(1)


def _command_start(args: argparse.Namespace) -> None:
    config = _load(args)
    host = args.host or config.listen.host
    port = args.port if args.port is not None else config.listen.port

    try:
        app = create_app(resolve_config_path(getattr(args, "config", None)))
    except ConfigError as exc:  # pragma: no cover - runtime setup error
        print(f"[error] Failed to create application: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    print(f"geofilter starting on http://{host}:{port}")
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=host,
            port=port,
            log_level=config.logging.level.lower(),
        )
    )
    app.state.server = server
    server.run()


def _command_check(args: argparse.Namespace) -> int:
    config = _load(args)
    try:
        engine = build_engine(config.geoip_filter)
    except ConfigError as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 1

    blocked = False
    try:
        for raw in args.ips:
            ip = canonical_ip(raw)
            if ip is None:
                print(f"[error] Invalid IP address: {raw}", file=sys.stderr)
                return 2
            verdict = engine.decide(ip)
            state = "allow" if verdict.allowed else "block"
            print(f"{ip}\t{verdict.country}\t{state}")
            blocked = blocked or verdict.blocked
    finally:
        engine.close()
    return 1 if blocked else 0


def _admin_base_url(args: argparse.Namespace, config: ServiceConfig) -> str:
    if args.admin_url:
        return args.admin_url.rstrip("/")
    host = config.listen.host
    if host in {"0.0.0.0", ""}:
        host = "127.0.0.1"
    elif host == "::":
        host = "::1"
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    return f"http://{host}:{config.listen.port}"


def _command_reload(args: argparse.Namespace) -> int:
    config = _load(args)
    url = f"{_admin_base_url(args, config)}/admin/reload"
    try:
        with httpx.Client(timeout=args.timeout) as client:
            response = client.post(url)
    except (httpx.HTTPError, OSError) as exc:
        print(f"[error] Admin request failed: {exc}", file=sys.stderr)
        return 1

    if response.status_code >= 400:
        print(
            f"[error] Admin endpoint returned {response.status_code}: {response.text}",
            file=sys.stderr,
        )
        return 1

    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict) and "status" in payload:
        print(payload["status"])
    else:
        print(f"Request succeeded ({response.status_code})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=argparse.SUPPRESS, help="Path to geofilter.json (default: $GEOFILTER_CONFIG or ./geofilter.json)")

    parser = argparse.ArgumentParser(description="GeoIP country filter service", parents=[common])
    subparsers = parser.add_subparsers(dest="command")

    start_parser = subparsers.add_parser("start", help="Run the decision service in the foreground", parents=[common])
    start_parser.add_argument("--host", help="Override listen host")
    start_parser.add_argument("--port", type=int, help="Override listen port")
    start_parser.set_defaults(func=_command_start)

    check_parser = subparsers.add_parser("check", help="Decide for one or more addresses and print the verdicts", parents=[common])
    check_parser.add_argument("ips", nargs="+", metavar="IP", help="Client address to check")
    check_parser.set_defaults(func=_command_check)

    reload_parser = subparsers.add_parser("reload", help="Ask a running service to reload its configuration", parents=[common])
    reload_parser.add_argument("--admin-url", help="Override admin base URL (e.g. http://127.0.0.1:8080)")
    reload_parser.add_argument("--timeout", type=float, default=5.0, help="HTTP timeout in seconds")
    reload_parser.set_defaults(func=_command_reload)

    parser.set_defaults(func=_command_start, host=None, port=None)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    result = args.func(args)
    if result:
        sys.exit(result)


if __name__ == "__main__":  # pragma: no cover
    main()
