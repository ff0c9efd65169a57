"""Typed failures raised by the filesystem blob substrate."""

from __future__ import annotations


class BlobStoreError(Exception):
    """Base exception for blob substrate failures."""


class BlobNotFoundError(BlobStoreError):
    """No blob exists under the requested namespace and content reference."""


class StorageIOError(BlobStoreError):
    """Underlying filesystem operation failed."""
