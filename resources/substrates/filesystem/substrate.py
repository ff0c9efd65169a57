"""Transport-agnostic protocol for filesystem blob substrate operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import BinaryIO, Protocol

from pydantic import BaseModel, ConfigDict


class Namespace(StrEnum):
    """Disjoint blob namespaces, each backed by its own directory."""

    CONSIGNMENT = "consignments"
    MEDIA = "media"


@dataclass(frozen=True)
class StagedBlob:
    """Handle for one uploaded payload sitting in the staging directory."""

    path: Path


class FilesystemHealthStatus(BaseModel):
    """Filesystem blob substrate readiness payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ready: bool
    detail: str


class FilesystemBlobSubstrate(Protocol):
    """Protocol for content-addressed blob persistence with staging."""

    def ensure_directories(self) -> None:
        """Create the staging and namespace directories when absent."""

    def health(self) -> FilesystemHealthStatus:
        """Probe local filesystem substrate readiness."""

    def stage(self, content: bytes | BinaryIO) -> StagedBlob:
        """Write one payload to a uniquely named staging file."""

    def fingerprint(self, staged: StagedBlob) -> str:
        """Return the sha256 hex digest of one staged payload."""

    def commit(
        self, staged: StagedBlob, *, namespace: Namespace, content_ref: str
    ) -> Path:
        """Move one staged payload under its final content-derived name."""

    def discard_staging(self, staged: StagedBlob) -> None:
        """Remove one staged payload; already-removed files are ignored."""

    def read(self, *, namespace: Namespace, content_ref: str) -> bytes:
        """Read one committed blob."""
