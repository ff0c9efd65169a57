"""Filesystem-backed blob substrate with stage-then-commit semantics."""

from __future__ import annotations

import hashlib
import os
import shutil
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import BinaryIO

from packages.proxy_shared.logging import get_logger
from resources.substrates.filesystem.config import FilesystemSubstrateSettings
from resources.substrates.filesystem.errors import BlobNotFoundError, StorageIOError
from resources.substrates.filesystem.substrate import (
    FilesystemBlobSubstrate,
    FilesystemHealthStatus,
    Namespace,
    StagedBlob,
)

_HEX = frozenset("0123456789abcdef")
_CHUNK_SIZE = 64 * 1024

_LOGGER = get_logger(__name__)


class LocalFilesystemBlobSubstrate(FilesystemBlobSubstrate):
    """Persist/retrieve blobs on local disk under digest-derived names.

    Payloads are first written to the staging directory, then moved into the
    namespace directory with ``os.replace`` so that a final name only ever
    refers to a complete file.
    """

    def __init__(self, *, settings: FilesystemSubstrateSettings) -> None:
        self._settings = settings
        self._temp_dir = settings.temp_path()
        self._namespace_dirs = {
            namespace: settings.namespace_path(namespace) for namespace in Namespace
        }

    def ensure_directories(self) -> None:
        """Create staging and namespace directories when absent."""
        for path in (self._temp_dir, *self._namespace_dirs.values()):
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StorageIOError(f"cannot create directory: {path}") from exc
            if not path.is_dir():
                raise StorageIOError(f"path is not a directory: {path}")

    def health(self) -> FilesystemHealthStatus:
        """Return readiness for staging and namespace directory access."""
        for path in (self._temp_dir, *self._namespace_dirs.values()):
            if not path.is_dir():
                return FilesystemHealthStatus(
                    ready=False,
                    detail=f"directory unavailable: {path}",
                )
            if not os.access(path, os.W_OK):
                return FilesystemHealthStatus(
                    ready=False,
                    detail=f"directory not writable: {path}",
                )
        return FilesystemHealthStatus(ready=True, detail="ok")

    def resolve_path(self, *, namespace: Namespace, content_ref: str) -> Path:
        """Resolve the final path for one namespace and content reference."""
        return self._namespace_dirs[Namespace(namespace)] / _normalize_digest_hex(
            content_ref
        )

    def stage(self, content: bytes | BinaryIO) -> StagedBlob:
        """Write one payload to a uniquely named file in the staging directory."""
        tmp_path: Path | None = None
        try:
            with NamedTemporaryFile(
                mode="wb",
                prefix=f".{self._settings.temp_prefix}-",
                suffix=".tmp",
                dir=self._temp_dir,
                delete=False,
            ) as handle:
                tmp_path = Path(handle.name)
                if isinstance(content, (bytes, bytearray, memoryview)):
                    handle.write(content)
                else:
                    shutil.copyfileobj(content, handle, _CHUNK_SIZE)
                handle.flush()
                if self._settings.fsync_writes:
                    os.fsync(handle.fileno())
        except OSError as exc:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise StorageIOError(f"staging write failed: {exc}") from exc
        return StagedBlob(path=tmp_path)

    def fingerprint(self, staged: StagedBlob) -> str:
        """Return the sha256 hex digest of one staged payload."""
        digest = hashlib.sha256()
        try:
            with staged.path.open("rb") as handle:
                for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
                    digest.update(chunk)
        except OSError as exc:
            raise StorageIOError(f"staging read failed: {exc}") from exc
        return digest.hexdigest()

    def commit(
        self, staged: StagedBlob, *, namespace: Namespace, content_ref: str
    ) -> Path:
        """Move one staged payload to its final name.

        When a blob with the same content reference already exists the staged
        copy is discarded instead, leaving the existing file untouched.
        """
        path = self.resolve_path(namespace=namespace, content_ref=content_ref)
        try:
            if path.exists():
                self.discard_staging(staged)
                _LOGGER.debug(
                    "Blob already stored: namespace=%s content_ref=%s",
                    Namespace(namespace).value,
                    content_ref,
                )
                return path
            os.replace(staged.path, path)
        except OSError as exc:
            raise StorageIOError(f"blob commit failed: {exc}") from exc
        return path

    def discard_staging(self, staged: StagedBlob) -> None:
        """Remove one staged payload; already-removed files are ignored."""
        try:
            staged.path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageIOError(f"staging cleanup failed: {exc}") from exc

    def read(self, *, namespace: Namespace, content_ref: str) -> bytes:
        """Read one committed blob by namespace and content reference."""
        path = self.resolve_path(namespace=namespace, content_ref=content_ref)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise BlobNotFoundError(
                f"blob not found: {Namespace(namespace).value}/{content_ref}"
            ) from exc
        except OSError as exc:
            raise StorageIOError(f"blob read failed: {exc}") from exc


def _normalize_digest_hex(value: str) -> str:
    """Validate and normalize one 64-char sha256 digest hex string."""
    normalized = value.strip().lower()
    if len(normalized) != 64:
        raise ValueError("content_ref must contain exactly 64 hex characters")
    if any(ch not in _HEX for ch in normalized):
        raise ValueError("content_ref must be hexadecimal")
    return normalized
