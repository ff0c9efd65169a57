"""Pydantic settings for Artifact Authority Service behavior."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.proxy_shared.config import ProxySettings, resolve_component_settings
from services.state.artifact_authority.component import SERVICE_COMPONENT_ID


class ArtifactAuthoritySettings(BaseModel):
    """Artifact Authority Service runtime behavior settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    protocol_version: str = "0.1"
    jsonrpc_log_truncate: int = Field(default=16, gt=0)

    @field_validator("protocol_version")
    @classmethod
    def _validate_protocol_version(cls, value: str) -> str:
        """Require a non-empty advertised protocol version."""
        normalized = value.strip()
        if normalized == "":
            raise ValueError("protocol_version is required")
        return normalized


def resolve_artifact_authority_settings(
    settings: ProxySettings,
) -> ArtifactAuthoritySettings:
    """Resolve settings from ``components.service.artifact_authority``."""
    return resolve_component_settings(
        settings=settings,
        component_id=SERVICE_COMPONENT_ID,
        model=ArtifactAuthoritySettings,
    )
