"""Concrete Artifact Authority Service implementation."""

from __future__ import annotations

from time import monotonic
from typing import Any

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from packages.proxy_shared.envelope import (
    Envelope,
    EnvelopeMeta,
    failure,
    success,
    validate_meta,
)
from packages.proxy_shared.errors import ErrorDetail, codes, dependency_error
from packages.proxy_shared.logging import get_logger, public_api_instrumented
from resources.substrates.filesystem import (
    BlobNotFoundError,
    FilesystemBlobSubstrate,
    Namespace,
    StagedBlob,
    StorageIOError,
)
from resources.substrates.sql import normalize_sql_error
from services.state.artifact_authority.ack import (
    AckTransition,
    require_undecided,
    resolve_ack_transition,
)
from services.state.artifact_authority.component import SERVICE_COMPONENT_ID
from services.state.artifact_authority.config import ArtifactAuthoritySettings
from services.state.artifact_authority.domain import HealthStatus, ServerInfo
from services.state.artifact_authority.errors import (
    AckConflictError,
    AlreadyRespondedError,
    DuplicateKeyError,
    ack_conflict_error,
    already_responded_error,
    blob_not_found_error,
    missing_file_error,
    record_not_found_error,
    storage_io_error,
    upload_conflict_error,
)
from services.state.artifact_authority.interfaces import (
    ArtifactRecord,
    ArtifactRepository,
)
from services.state.artifact_authority.service import ArtifactAuthorityService, Upload
from services.state.artifact_authority.validation import (
    AckRequest,
    AttachmentIdRequest,
    BlindedUtxoRequest,
    decode_params,
)

_LOGGER = get_logger(__name__)


class DefaultArtifactAuthorityService(ArtifactAuthorityService):
    """Default implementation with SQL metadata and filesystem blobs."""

    def __init__(
        self,
        *,
        settings: ArtifactAuthoritySettings,
        repository: ArtifactRepository,
        blob_store: FilesystemBlobSubstrate,
        version: str,
    ) -> None:
        self._settings = settings
        self._repository = repository
        self._blob_store = blob_store
        self._version = version
        self._started = monotonic()

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
    )
    def server_info(self, *, meta: EnvelopeMeta) -> Envelope[ServerInfo]:
        """Return server version, protocol version and whole-second uptime."""
        errors = validate_meta(meta)
        if errors:
            return failure(meta=meta, errors=errors)
        return success(
            meta=meta,
            payload=ServerInfo(
                version=self._version,
                protocol_version=self._settings.protocol_version,
                uptime=int(monotonic() - self._started),
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
    )
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return readiness from a database ping and a blob directory check."""
        errors = validate_meta(meta)
        if errors:
            return failure(meta=meta, errors=errors)

        details: list[str] = []
        try:
            service_ready = self._repository.ping()
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning(
                "health database check failed: exception_type=%s",
                type(exc).__name__,
            )
            service_ready = False
            details.append(f"database check failed: {type(exc).__name__}")

        blob_health = self._blob_store.health()
        if not blob_health.ready:
            details.append(blob_health.detail)

        return success(
            meta=meta,
            payload=HealthStatus(
                service_ready=service_ready,
                substrate_ready=blob_health.ready,
                detail="; ".join(details) or "ok",
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("blinded_utxo",),
    )
    def get_consignment(self, *, meta: EnvelopeMeta, params: Any) -> Envelope[bytes]:
        """Read one consignment's bytes by blinded UTXO."""
        request, errors = self._validate_request(
            meta=meta, model=BlindedUtxoRequest, params=params
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, BlindedUtxoRequest)
        return self._read_artifact(
            meta=meta,
            namespace=Namespace.CONSIGNMENT,
            key=request.blinded_utxo,
            operation="get_consignment",
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("blinded_utxo",),
    )
    def post_consignment(
        self, *, meta: EnvelopeMeta, params: Any, upload: Upload | None
    ) -> Envelope[bool]:
        """Store one consignment under its blinded UTXO."""
        request, errors = self._validate_request(
            meta=meta, model=BlindedUtxoRequest, params=params
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, BlindedUtxoRequest)
        return self._store_artifact(
            meta=meta,
            namespace=Namespace.CONSIGNMENT,
            key=request.blinded_utxo,
            upload=upload,
            operation="post_consignment",
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("attachment_id",),
    )
    def get_media(self, *, meta: EnvelopeMeta, params: Any) -> Envelope[bytes]:
        """Read one media attachment's bytes by attachment ID."""
        request, errors = self._validate_request(
            meta=meta, model=AttachmentIdRequest, params=params
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, AttachmentIdRequest)
        return self._read_artifact(
            meta=meta,
            namespace=Namespace.MEDIA,
            key=request.attachment_id,
            operation="get_media",
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("attachment_id",),
    )
    def post_media(
        self, *, meta: EnvelopeMeta, params: Any, upload: Upload | None
    ) -> Envelope[bool]:
        """Store one media attachment under its attachment ID."""
        request, errors = self._validate_request(
            meta=meta, model=AttachmentIdRequest, params=params
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, AttachmentIdRequest)
        return self._store_artifact(
            meta=meta,
            namespace=Namespace.MEDIA,
            key=request.attachment_id,
            upload=upload,
            operation="post_media",
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("blinded_utxo",),
    )
    def get_ack(self, *, meta: EnvelopeMeta, params: Any) -> Envelope[bool | None]:
        """Read one consignment's ack value; ``None`` while undecided."""
        request, errors = self._validate_request(
            meta=meta, model=BlindedUtxoRequest, params=params
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, BlindedUtxoRequest)

        try:
            record = self._repository.find_by_key(
                namespace=Namespace.CONSIGNMENT, key=request.blinded_utxo
            )
        except Exception as exc:  # noqa: BLE001
            return self._storage_failure(meta=meta, operation="get_ack", exc=exc)
        if record is None:
            return self._not_found(
                meta=meta, namespace=Namespace.CONSIGNMENT, key=request.blinded_utxo
            )
        return success(meta=meta, payload=getattr(record, "ack", None))

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("blinded_utxo",),
    )
    def post_ack(self, *, meta: EnvelopeMeta, params: Any) -> Envelope[bool]:
        """Record one ack value with compare-and-set on the undecided state."""
        request, errors = self._validate_request(
            meta=meta, model=AckRequest, params=params
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, AckRequest)
        key = request.blinded_utxo

        try:
            record = self._repository.find_by_key(
                namespace=Namespace.CONSIGNMENT, key=key
            )
            if record is None:
                return self._not_found(
                    meta=meta, namespace=Namespace.CONSIGNMENT, key=key
                )
            current = getattr(record, "ack", None)
            if resolve_ack_transition(current, request.ack) is AckTransition.UNCHANGED:
                return success(meta=meta, payload=False)
            if self._repository.set_ack(blinded_utxo=key, ack=request.ack):
                return success(meta=meta, payload=True)

            # A concurrent setter recorded a value first.
            winner = self._repository.find_by_key(
                namespace=Namespace.CONSIGNMENT, key=key
            )
            resolve_ack_transition(getattr(winner, "ack", None), request.ack)
            return success(meta=meta, payload=False)
        except AckConflictError:
            return failure(meta=meta, errors=[ack_conflict_error(key)])
        except Exception as exc:  # noqa: BLE001
            return self._storage_failure(meta=meta, operation="post_ack", exc=exc)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("blinded_utxo",),
    )
    def respond(
        self, *, meta: EnvelopeMeta, params: Any, ack: bool
    ) -> Envelope[bool]:
        """Record a legacy ack/nack response; any prior decision rejects it."""
        request, errors = self._validate_request(
            meta=meta, model=BlindedUtxoRequest, params=params
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, BlindedUtxoRequest)
        key = request.blinded_utxo

        try:
            record = self._repository.find_by_key(
                namespace=Namespace.CONSIGNMENT, key=key
            )
            if record is None:
                return self._not_found(
                    meta=meta, namespace=Namespace.CONSIGNMENT, key=key
                )
            require_undecided(getattr(record, "ack", None))
            if not self._repository.set_ack(blinded_utxo=key, ack=ack):
                raise AlreadyRespondedError("consignment decided concurrently")
            return success(meta=meta, payload=True)
        except AlreadyRespondedError:
            return failure(meta=meta, errors=[already_responded_error(key)])
        except Exception as exc:  # noqa: BLE001
            return self._storage_failure(meta=meta, operation="respond", exc=exc)

    def _read_artifact(
        self,
        *,
        meta: EnvelopeMeta,
        namespace: Namespace,
        key: str,
        operation: str,
    ) -> Envelope[bytes]:
        """Look up one record and return its blob bytes."""
        try:
            record = self._repository.find_by_key(namespace=namespace, key=key)
            if record is None:
                return self._not_found(meta=meta, namespace=namespace, key=key)
            content = self._blob_store.read(
                namespace=namespace, content_ref=record.content_ref
            )
        except BlobNotFoundError:
            _LOGGER.error(
                "Record references missing blob: namespace=%s key=%s",
                namespace.value,
                key,
            )
            return failure(
                meta=meta,
                errors=[blob_not_found_error(namespace, record.content_ref)],
            )
        except Exception as exc:  # noqa: BLE001
            return self._storage_failure(meta=meta, operation=operation, exc=exc)
        return success(meta=meta, payload=content)

    def _store_artifact(
        self,
        *,
        meta: EnvelopeMeta,
        namespace: Namespace,
        key: str,
        upload: Upload | None,
        operation: str,
    ) -> Envelope[bool]:
        """Stage, fingerprint and commit one upload with idempotent semantics.

        The staged file never outlives this call: it is either moved into the
        namespace directory or discarded.
        """
        if upload is None:
            return failure(meta=meta, errors=[missing_file_error()])

        staged: StagedBlob | None = None
        try:
            staged = self._blob_store.stage(upload)
            content_ref = self._blob_store.fingerprint(staged)

            existing = self._repository.find_by_key(namespace=namespace, key=key)
            if existing is not None:
                return self._existing_upload_result(
                    meta=meta,
                    namespace=namespace,
                    record=existing,
                    content_ref=content_ref,
                )

            self._blob_store.commit(
                staged, namespace=namespace, content_ref=content_ref
            )
            staged = None

            try:
                self._repository.insert(
                    namespace=namespace, key=key, content_ref=content_ref
                )
            except DuplicateKeyError:
                winner = self._repository.find_by_key(namespace=namespace, key=key)
                if winner is None:
                    raise
                return self._existing_upload_result(
                    meta=meta,
                    namespace=namespace,
                    record=winner,
                    content_ref=content_ref,
                )
            return success(meta=meta, payload=True)
        except Exception as exc:  # noqa: BLE001
            return self._storage_failure(meta=meta, operation=operation, exc=exc)
        finally:
            if staged is not None:
                self._discard_staged(staged)

    def _existing_upload_result(
        self,
        *,
        meta: EnvelopeMeta,
        namespace: Namespace,
        record: ArtifactRecord,
        content_ref: str,
    ) -> Envelope[bool]:
        """Resolve an upload against an already-stored record for its key."""
        if record.content_ref == content_ref:
            return success(meta=meta, payload=False)
        return failure(meta=meta, errors=[upload_conflict_error(namespace, record.key)])

    def _validate_request(
        self,
        *,
        meta: EnvelopeMeta,
        model: type[BaseModel],
        params: Any,
    ) -> tuple[BaseModel | None, list[ErrorDetail]]:
        """Validate envelope metadata and raw request params."""
        errors = validate_meta(meta)
        if errors:
            return None, errors
        return decode_params(model, params)

    def _not_found(
        self, *, meta: EnvelopeMeta, namespace: Namespace, key: str
    ) -> Envelope[Any]:
        """Return canonical not-found envelope for key lookups."""
        return failure(meta=meta, errors=[record_not_found_error(namespace, key)])

    def _storage_failure(
        self,
        *,
        meta: EnvelopeMeta,
        operation: str,
        exc: Exception,
    ) -> Envelope[Any]:
        """Map storage-layer exceptions into structured envelope errors."""
        if isinstance(exc, StorageIOError):
            _LOGGER.warning(
                "%s failed due to storage error: %s", operation, exc, exc_info=exc
            )
            return failure(meta=meta, errors=[storage_io_error(operation, exc)])
        if isinstance(exc, SQLAlchemyError):
            _LOGGER.warning(
                "%s failed due to database error: exception_type=%s",
                operation,
                type(exc).__name__,
                exc_info=exc,
            )
            return failure(meta=meta, errors=[normalize_sql_error(exc)])
        return self._dependency_failure(meta=meta, operation=operation, exc=exc)

    def _dependency_failure(
        self,
        *,
        meta: EnvelopeMeta,
        operation: str,
        exc: Exception,
    ) -> Envelope[Any]:
        """Map one unexpected runtime exception into structured envelope errors."""
        _LOGGER.warning(
            "%s failed due to dependency error: exception_type=%s",
            operation,
            type(exc).__name__,
            exc_info=exc,
        )
        return failure(
            meta=meta,
            errors=[
                dependency_error(
                    f"{operation} failed",
                    code=codes.DEPENDENCY_FAILURE,
                    metadata={"exception_type": type(exc).__name__},
                )
            ],
        )

    def _discard_staged(self, staged: StagedBlob) -> None:
        """Best-effort removal of a staged upload that was not committed."""
        try:
            self._blob_store.discard_staging(staged)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning(
                "Failed to discard staged upload: path=%s exception_type=%s",
                staged.path,
                type(exc).__name__,
                exc_info=exc,
            )
