"""Shared fixtures for Artifact Authority Service tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from packages.proxy_shared.config import ProxySettings, load_settings
from services.state.artifact_authority.service import (
    ArtifactAuthorityService,
    build_artifact_authority_service,
)


@pytest.fixture
def proxy_settings(tmp_path: Path) -> ProxySettings:
    """Settings rooting the database and blob directories in ``tmp_path``."""
    return load_settings(
        config_path=tmp_path / "absent.yaml",
        cli_params={
            "components": {
                "substrate": {
                    "filesystem": {"app_dir": str(tmp_path), "fsync_writes": False},
                    "sql": {"database_file": str(tmp_path / "app.db")},
                }
            }
        },
    )


@pytest.fixture
def artifact_service(proxy_settings: ProxySettings) -> ArtifactAuthorityService:
    """Service wired to SQLite and local disk under ``tmp_path``."""
    return build_artifact_authority_service(settings=proxy_settings, version="0.1.0")
