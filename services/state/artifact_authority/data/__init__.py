"""Data-layer exports for Artifact Authority Service."""

from services.state.artifact_authority.data.repository import SqlArtifactRepository
from services.state.artifact_authority.data.runtime import ArtifactSqlRuntime

__all__ = ["ArtifactSqlRuntime", "SqlArtifactRepository"]
