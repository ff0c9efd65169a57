"""Process entrypoint for the RGB proxy server."""

from __future__ import annotations

import argparse
from typing import Any, Sequence

from fastapi import FastAPI

from packages.proxy_core.version import APP_VERSION
from packages.proxy_shared.config import ProxySettings, load_settings
from packages.proxy_shared.http import create_app, run_app
from packages.proxy_shared.logging import configure_logging, get_logger
from services.state.artifact_authority.api import register_routes
from services.state.artifact_authority.config import (
    resolve_artifact_authority_settings,
)
from services.state.artifact_authority.service import (
    build_artifact_authority_service,
)

_LOGGER = get_logger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line overrides for listener and config file."""
    parser = argparse.ArgumentParser(description="RGB consignment proxy server")
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Listener host (overrides http.host)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Listener port (overrides http.port)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML config file (default ~/.config/rgb-proxy/proxy.yaml)",
    )
    return parser.parse_args(argv)


def cli_params(args: argparse.Namespace) -> dict[str, Any]:
    """Map parsed arguments onto settings overrides, skipping unset values."""
    http: dict[str, Any] = {}
    if args.host is not None:
        http["host"] = args.host
    if args.port is not None:
        http["port"] = args.port
    return {"http": http} if http else {}


def build_app(settings: ProxySettings) -> FastAPI:
    """Build the service graph and return the HTTP application."""
    service = build_artifact_authority_service(settings=settings, version=APP_VERSION)
    app = create_app(version=APP_VERSION)
    register_routes(
        app,
        service=service,
        settings=resolve_artifact_authority_settings(settings),
    )
    return app


def main(argv: Sequence[str] | None = None) -> None:
    """Load settings, configure logging, and serve until interrupted."""
    args = parse_args(argv)
    settings = load_settings(cli_params=cli_params(args), config_path=args.config)
    configure_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_output,
        service=settings.logging.service,
        environment=settings.logging.environment,
    )

    app = build_app(settings)
    _LOGGER.info(
        "proxy server starting",
        extra={
            "version": APP_VERSION,
            "host": settings.http.host,
            "port": settings.http.port,
        },
    )
    run_app(
        app,
        host=settings.http.host,
        port=settings.http.port,
        log_level=settings.http.log_level,
    )


if __name__ == "__main__":
    main()
