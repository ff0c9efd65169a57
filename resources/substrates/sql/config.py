"""Pydantic settings for the shared SQL substrate component."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.proxy_shared.config import ProxySettings, resolve_component_settings
from resources.substrates.sql.component import RESOURCE_COMPONENT_ID


class SqlSettings(BaseModel):
    """Runtime settings for constructing SQLAlchemy engines.

    ``url`` takes precedence when set; otherwise a SQLite database file at
    ``database_file`` is used.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str | None = None
    database_file: str = "~/.rgb-proxy/app.db"
    busy_timeout_seconds: float = Field(default=5.0, gt=0)
    pool_pre_ping: bool = True
    echo: bool = False

    @field_validator("url")
    @classmethod
    def _normalize_url(cls, value: str | None) -> str | None:
        """Treat a blank URL as unset."""
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None

    @field_validator("database_file")
    @classmethod
    def _validate_database_file(cls, value: str) -> str:
        """Require a non-empty database file path."""
        normalized = value.strip()
        if normalized == "":
            raise ValueError("database_file is required")
        return normalized

    def database_path(self) -> Path:
        """Return the expanded SQLite database file path."""
        return Path(self.database_file).expanduser().resolve()

    def resolved_url(self) -> str:
        """Return the SQLAlchemy URL used to build the engine."""
        if self.url is not None:
            return self.url
        return f"sqlite:///{self.database_path()}"

    def is_sqlite(self) -> bool:
        """Return whether the resolved URL targets SQLite."""
        return self.resolved_url().startswith("sqlite")


def resolve_sql_settings(settings: ProxySettings) -> SqlSettings:
    """Resolve SQL substrate settings from ``components.substrate.sql``."""
    return resolve_component_settings(
        settings=settings,
        component_id=RESOURCE_COMPONENT_ID,
        model=SqlSettings,
    )
