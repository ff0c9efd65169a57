"""Authoritative in-process Python API for Artifact Authority Service."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, BinaryIO

from packages.proxy_shared.config import ProxySettings
from packages.proxy_shared.envelope import Envelope, EnvelopeMeta
from resources.substrates.filesystem.substrate import FilesystemBlobSubstrate
from services.state.artifact_authority.domain import HealthStatus, ServerInfo

Upload = bytes | BinaryIO


class ArtifactAuthorityService(ABC):
    """Public API for consignment/media relay and acknowledgment operations.

    ``params`` arguments are the raw, unvalidated request parameter mappings
    received by a surface; every method validates them before touching
    storage.
    """

    @abstractmethod
    def server_info(self, *, meta: EnvelopeMeta) -> Envelope[ServerInfo]:
        """Return server version, protocol version and uptime."""

    @abstractmethod
    def get_consignment(self, *, meta: EnvelopeMeta, params: Any) -> Envelope[bytes]:
        """Read one consignment's bytes by blinded UTXO."""

    @abstractmethod
    def post_consignment(
        self, *, meta: EnvelopeMeta, params: Any, upload: Upload | None
    ) -> Envelope[bool]:
        """Store one consignment; ``True`` when created, ``False`` on no-op."""

    @abstractmethod
    def get_media(self, *, meta: EnvelopeMeta, params: Any) -> Envelope[bytes]:
        """Read one media attachment's bytes by attachment ID."""

    @abstractmethod
    def post_media(
        self, *, meta: EnvelopeMeta, params: Any, upload: Upload | None
    ) -> Envelope[bool]:
        """Store one media attachment; ``True`` when created."""

    @abstractmethod
    def get_ack(self, *, meta: EnvelopeMeta, params: Any) -> Envelope[bool | None]:
        """Read one consignment's ack value; ``None`` while undecided."""

    @abstractmethod
    def post_ack(self, *, meta: EnvelopeMeta, params: Any) -> Envelope[bool]:
        """Record an ack value; ``True`` when changed, ``False`` on repeat."""

    @abstractmethod
    def respond(
        self, *, meta: EnvelopeMeta, params: Any, ack: bool
    ) -> Envelope[bool]:
        """Record a legacy ack/nack response; fails once any is recorded."""

    @abstractmethod
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return service and owned dependency readiness status."""


def build_artifact_authority_service(
    *,
    settings: ProxySettings,
    version: str,
    blob_store: FilesystemBlobSubstrate | None = None,
) -> ArtifactAuthorityService:
    """Build default Artifact Authority implementation from typed settings.

    Creates the staging and namespace directories and any missing tables.
    """
    from resources.substrates.filesystem import (
        LocalFilesystemBlobSubstrate,
        resolve_filesystem_substrate_settings,
    )
    from services.state.artifact_authority.config import (
        resolve_artifact_authority_settings,
    )
    from services.state.artifact_authority.data import (
        ArtifactSqlRuntime,
        SqlArtifactRepository,
    )
    from services.state.artifact_authority.implementation import (
        DefaultArtifactAuthorityService,
    )

    store = blob_store or LocalFilesystemBlobSubstrate(
        settings=resolve_filesystem_substrate_settings(settings)
    )
    store.ensure_directories()
    runtime = ArtifactSqlRuntime.from_settings(settings)
    return DefaultArtifactAuthorityService(
        settings=resolve_artifact_authority_settings(settings),
        repository=SqlArtifactRepository(runtime.substrate.sessions),
        blob_store=store,
        version=version,
    )
