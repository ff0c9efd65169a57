"""Pydantic settings for the filesystem substrate component."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator

from packages.proxy_shared.config import ProxySettings, resolve_component_settings
from resources.substrates.filesystem.component import RESOURCE_COMPONENT_ID
from resources.substrates.filesystem.substrate import Namespace


class FilesystemSubstrateSettings(BaseModel):
    """Filesystem substrate runtime settings for staged blob persistence.

    ``temp_dir``, ``consignment_dir`` and ``media_dir`` default to
    subdirectories of ``app_dir`` when left unset.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    app_dir: str = "~/.rgb-proxy"
    temp_dir: str | None = None
    consignment_dir: str | None = None
    media_dir: str | None = None
    temp_prefix: str = "proxytmp"
    fsync_writes: bool = True

    @field_validator("app_dir")
    @classmethod
    def _validate_app_dir(cls, value: str) -> str:
        """Require a non-empty application directory path."""
        normalized = value.strip()
        if normalized == "":
            raise ValueError("app_dir is required")
        return normalized

    @field_validator("temp_dir", "consignment_dir", "media_dir")
    @classmethod
    def _normalize_optional_dir(cls, value: str | None) -> str | None:
        """Treat blank directory overrides as unset."""
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None

    @field_validator("temp_prefix")
    @classmethod
    def _validate_temp_prefix(cls, value: str) -> str:
        """Require a non-empty temporary filename prefix."""
        normalized = value.strip()
        if normalized == "":
            raise ValueError("temp_prefix is required")
        return normalized

    def app_path(self) -> Path:
        """Return the expanded application directory."""
        return Path(self.app_dir).expanduser().resolve()

    def temp_path(self) -> Path:
        """Return the staging directory for in-flight uploads."""
        return _resolve_dir(self.temp_dir, default=self.app_path() / "tmp")

    def namespace_path(self, namespace: Namespace) -> Path:
        """Return the final blob directory for one namespace."""
        if namespace is Namespace.CONSIGNMENT:
            return _resolve_dir(
                self.consignment_dir, default=self.app_path() / "consignments"
            )
        return _resolve_dir(self.media_dir, default=self.app_path() / "media")


def _resolve_dir(value: str | None, *, default: Path) -> Path:
    if value is None:
        return default
    return Path(value).expanduser().resolve()


def resolve_filesystem_substrate_settings(
    settings: ProxySettings,
) -> FilesystemSubstrateSettings:
    """Resolve filesystem substrate settings from ``substrate.filesystem``."""
    return resolve_component_settings(
        settings=settings,
        component_id=RESOURCE_COMPONENT_ID,
        model=FilesystemSubstrateSettings,
    )
