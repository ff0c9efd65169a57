"""Service-local error codes, typed failures and error factories.

Codes extend the shared set in ``packages.proxy_shared.errors.codes``. Request
surfaces choose wire codes and HTTP statuses from these values.
"""

from __future__ import annotations

from packages.proxy_shared.errors import (
    ErrorDetail,
    conflict_error,
    dependency_error,
    not_found_error,
    validation_error,
)
from resources.substrates.filesystem import Namespace

# Parameter validation
MISSING_BLINDED_UTXO = "MISSING_BLINDED_UTXO"
INVALID_BLINDED_UTXO = "INVALID_BLINDED_UTXO"
MISSING_ATTACHMENT_ID = "MISSING_ATTACHMENT_ID"
INVALID_ATTACHMENT_ID = "INVALID_ATTACHMENT_ID"
MISSING_ACK = "MISSING_ACK"
INVALID_ACK = "INVALID_ACK"
MISSING_FILE = "MISSING_FILE"

# Lookup
NOT_FOUND_CONSIGNMENT = "NOT_FOUND_CONSIGNMENT"
NOT_FOUND_MEDIA = "NOT_FOUND_MEDIA"

# State conflicts
CANNOT_CHANGE_UPLOADED_FILE = "CANNOT_CHANGE_UPLOADED_FILE"
CANNOT_CHANGE_ACK = "CANNOT_CHANGE_ACK"
ALREADY_RESPONDED = "ALREADY_RESPONDED"

# Storage
BLOB_NOT_FOUND = "BLOB_NOT_FOUND"
STORAGE_IO_ERROR = "STORAGE_IO_ERROR"


class ArtifactAuthorityError(Exception):
    """Base exception for artifact authority state failures."""


class DuplicateKeyError(ArtifactAuthorityError):
    """A record already exists for the namespace and key."""

    def __init__(self, *, namespace: Namespace, key: str) -> None:
        super().__init__(f"{Namespace(namespace).value} record exists: {key}")
        self.namespace = namespace
        self.key = key


class AckConflictError(ArtifactAuthorityError):
    """A different acknowledgment value is already recorded."""


class AlreadyRespondedError(ArtifactAuthorityError):
    """A legacy response was attempted after a decision was recorded."""


def param_error(field: str, *, missing: bool) -> ErrorDetail:
    """Return the Missing/Invalid error for one request parameter."""
    prefix = "MISSING" if missing else "INVALID"
    label = "Missing" if missing else "Invalid"
    return validation_error(
        f"{label} {field}",
        code=f"{prefix}_{field.upper()}",
        metadata={"field": field},
    )


def missing_file_error() -> ErrorDetail:
    """Return the error for an upload without a file payload."""
    return validation_error("Missing file", code=MISSING_FILE)


def record_not_found_error(namespace: Namespace, key: str) -> ErrorDetail:
    """Return the not-found error for one namespace lookup."""
    if namespace is Namespace.CONSIGNMENT:
        return not_found_error(
            "Consignment not found",
            code=NOT_FOUND_CONSIGNMENT,
            metadata={"blinded_utxo": key},
        )
    return not_found_error(
        "Media not found",
        code=NOT_FOUND_MEDIA,
        metadata={"attachment_id": key},
    )


def upload_conflict_error(namespace: Namespace, key: str) -> ErrorDetail:
    """Return the error for an upload that would replace stored content."""
    return conflict_error(
        "Cannot change uploaded file",
        code=CANNOT_CHANGE_UPLOADED_FILE,
        metadata={"namespace": Namespace(namespace).value, "key": key},
    )


def ack_conflict_error(key: str) -> ErrorDetail:
    """Return the error for an ack request contradicting the recorded value."""
    return conflict_error(
        "Cannot change ACK",
        code=CANNOT_CHANGE_ACK,
        metadata={"blinded_utxo": key},
    )


def already_responded_error(key: str) -> ErrorDetail:
    """Return the error for a legacy response after a recorded decision."""
    return conflict_error(
        "Already responded",
        code=ALREADY_RESPONDED,
        metadata={"blinded_utxo": key},
    )


def blob_not_found_error(namespace: Namespace, content_ref: str) -> ErrorDetail:
    """Return the error for a record whose blob is missing on disk."""
    return dependency_error(
        "stored artifact is missing",
        code=BLOB_NOT_FOUND,
        retryable=False,
        metadata={"namespace": Namespace(namespace).value, "content_ref": content_ref},
    )


def storage_io_error(operation: str, exc: Exception) -> ErrorDetail:
    """Return the error for a failed blob storage operation."""
    return dependency_error(
        f"{operation} failed",
        code=STORAGE_IO_ERROR,
        retryable=True,
        metadata={"exception_type": type(exc).__name__},
    )
