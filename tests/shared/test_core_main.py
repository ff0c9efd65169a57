"""Tests for proxy process bootstrap and argument handling."""

from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from packages.proxy_core.main import build_app, cli_params, parse_args
from packages.proxy_core.version import APP_VERSION
from packages.proxy_shared.config import load_settings

main_module = importlib.import_module("packages.proxy_core.main")


def _config(tmp_path: Path, *extra: str) -> Path:
    config_file = tmp_path / "proxy.yaml"
    config_file.write_text(
        "\n".join(
            [
                "logging:",
                "  json_output: false",
                "components:",
                "  substrate:",
                "    filesystem:",
                f"      app_dir: {tmp_path}",
                "      fsync_writes: false",
                "    sql:",
                f"      database_file: {tmp_path / 'app.db'}",
                *extra,
            ]
        ),
        encoding="utf-8",
    )
    return config_file


def test_parse_args_defaults_leave_settings_untouched() -> None:
    args = parse_args([])

    assert args.host is None
    assert args.port is None
    assert args.config is None
    assert cli_params(args) == {}


def test_cli_params_only_include_given_listener_values() -> None:
    args = parse_args(["--port", "8080", "--config", "/etc/proxy.yaml"])

    assert cli_params(args) == {"http": {"port": 8080}}
    assert args.config == "/etc/proxy.yaml"


def test_build_app_serves_both_surfaces(tmp_path: Path) -> None:
    """The built app exposes JSON-RPC, REST and health on one listener."""
    settings = load_settings(config_path=_config(tmp_path))
    client = TestClient(build_app(settings))

    info = client.post(
        "/json-rpc", json={"jsonrpc": "2.0", "id": 1, "method": "server.info"}
    )
    getinfo = client.get("/getinfo")
    health = client.get("/health")

    assert info.json()["result"]["version"] == APP_VERSION
    assert getinfo.json()["version"] == APP_VERSION
    assert health.status_code == 200
    assert (tmp_path / "consignments").is_dir()
    assert (tmp_path / "app.db").exists()


def test_main_loads_config_and_runs_listener(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """CLI overrides beat the config file and reach uvicorn."""
    called: dict[str, Any] = {}

    def _fake_run_app(app: Any, **kwargs: Any) -> None:
        called["app"] = app
        called.update(kwargs)

    monkeypatch.setattr(main_module, "run_app", _fake_run_app)
    monkeypatch.setattr(
        main_module,
        "configure_logging",
        lambda **kwargs: called.setdefault("logging", kwargs),
    )
    config_file = _config(tmp_path, "http:", "  host: 127.0.0.1", "  port: 4000")

    main_module.main(["--config", str(config_file), "--port", "4100"])

    assert called["host"] == "127.0.0.1"
    assert called["port"] == 4100
    assert called["log_level"] == "info"
    assert called["app"].version == APP_VERSION
    assert called["logging"]["json_output"] is False
    assert called["logging"]["service"] == "rgb-proxy"
