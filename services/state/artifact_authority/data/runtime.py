"""Service-owned SQL runtime wiring."""

from __future__ import annotations

from dataclasses import dataclass

from packages.proxy_shared.config import ProxySettings
from resources.substrates.sql import SharedSqlSubstrate, resolve_sql_settings

from .schema import metadata


@dataclass(frozen=True)
class ArtifactSqlRuntime:
    """Concrete handle for service-owned SQL access."""

    substrate: SharedSqlSubstrate

    @classmethod
    def from_settings(cls, settings: ProxySettings) -> "ArtifactSqlRuntime":
        """Build the DB runtime and create any missing service tables."""
        substrate = SharedSqlSubstrate(settings=resolve_sql_settings(settings))
        substrate.create_tables(metadata)
        return cls(substrate=substrate)
