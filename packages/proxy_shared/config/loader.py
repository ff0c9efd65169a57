"""Entry point for reading proxy settings.

Precedence, highest first:

1. ``cli_params`` passed by the process entrypoint
2. ``PROXY_``-prefixed environment variables, ``__`` between nested keys
   (``PROXY_HTTP__PORT=4000`` sets ``http.port``)
3. the YAML file, ``~/.config/rgb-proxy/proxy.yaml`` unless ``config_path``
4. model defaults

Nested mappings merge key by key across sources, so ``--port`` alone keeps a
``http.host`` read from YAML.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from pydantic_settings import SettingsConfigDict

from .models import DEFAULT_CONFIG_PATH, ProxySettings


def load_settings(
    *,
    cli_params: Mapping[str, Any] | None = None,
    config_path: str | Path | None = None,
) -> ProxySettings:
    """Resolve settings; a missing YAML file just means no file layer."""
    yaml_file = (
        DEFAULT_CONFIG_PATH if config_path is None else Path(config_path).expanduser()
    )

    class _FileBoundSettings(ProxySettings):
        model_config = SettingsConfigDict(yaml_file=yaml_file)

    return _FileBoundSettings(**dict(cli_params or {}))
