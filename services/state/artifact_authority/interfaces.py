"""Transport-neutral protocol interfaces used by Artifact Authority Service."""

from __future__ import annotations

from typing import Protocol

from resources.substrates.filesystem import Namespace
from services.state.artifact_authority.domain import ConsignmentRecord, MediaRecord

ArtifactRecord = ConsignmentRecord | MediaRecord


class ArtifactRepository(Protocol):
    """Protocol for authoritative artifact metadata persistence operations."""

    def find_by_key(self, *, namespace: Namespace, key: str) -> ArtifactRecord | None:
        """Read one record by namespace and rendezvous key."""

    def insert(
        self, *, namespace: Namespace, key: str, content_ref: str
    ) -> ArtifactRecord:
        """Create one record; raise ``DuplicateKeyError`` when the key exists."""

    def set_ack(self, *, blinded_utxo: str, ack: bool) -> bool:
        """Record an ack only while undecided; return whether a row changed."""

    def ping(self) -> bool:
        """Return whether the backing store answers queries."""
