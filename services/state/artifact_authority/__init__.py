"""Artifact Authority Service native package exports."""

from packages.proxy_shared.envelope import Envelope, EnvelopeKind, EnvelopeMeta
from packages.proxy_shared.errors import ErrorCategory, ErrorDetail
from services.state.artifact_authority.ack import AckState
from services.state.artifact_authority.api import register_routes
from services.state.artifact_authority.component import SERVICE_COMPONENT_ID
from services.state.artifact_authority.config import ArtifactAuthoritySettings
from services.state.artifact_authority.domain import (
    ConsignmentRecord,
    HealthStatus,
    MediaRecord,
    ServerInfo,
)
from services.state.artifact_authority.implementation import (
    DefaultArtifactAuthorityService,
)
from services.state.artifact_authority.jsonrpc import JsonRpcDispatcher
from services.state.artifact_authority.service import (
    ArtifactAuthorityService,
    build_artifact_authority_service,
)

__all__ = [
    "SERVICE_COMPONENT_ID",
    "AckState",
    "ArtifactAuthorityService",
    "ArtifactAuthoritySettings",
    "ConsignmentRecord",
    "DefaultArtifactAuthorityService",
    "HealthStatus",
    "JsonRpcDispatcher",
    "MediaRecord",
    "ServerInfo",
    "build_artifact_authority_service",
    "register_routes",
    "Envelope",
    "EnvelopeKind",
    "EnvelopeMeta",
    "ErrorCategory",
    "ErrorDetail",
]
