"""Public API for proxy process bootstrap."""

from packages.proxy_core.main import build_app, parse_args
from packages.proxy_core.version import APP_VERSION

__all__ = ["APP_VERSION", "build_app", "parse_args"]
