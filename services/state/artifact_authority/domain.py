"""Domain contracts for Artifact Authority Service payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ConsignmentRecord(BaseModel):
    """Authoritative metadata for one uploaded consignment.

    ``ack`` is ``None`` until the recipient responds; once set it never
    changes. ``nack`` and ``responded`` are derived views kept for the legacy
    REST surface.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    blinded_utxo: str
    content_ref: str
    ack: bool | None = None
    created_at: datetime

    @property
    def key(self) -> str:
        """Return the rendezvous key for this record."""
        return self.blinded_utxo

    @property
    def responded(self) -> bool:
        """Return whether an acknowledgment decision was recorded."""
        return self.ack is not None

    @property
    def nack(self) -> bool:
        """Return whether the recorded decision was a rejection."""
        return self.ack is False


class MediaRecord(BaseModel):
    """Authoritative metadata for one uploaded media attachment."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    attachment_id: str
    content_ref: str
    created_at: datetime

    @property
    def key(self) -> str:
        """Return the rendezvous key for this record."""
        return self.attachment_id


class ServerInfo(BaseModel):
    """Static server identity and process uptime."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: str
    protocol_version: str
    uptime: int


class HealthStatus(BaseModel):
    """Service and owned dependency readiness status payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_ready: bool
    substrate_ready: bool
    detail: str
