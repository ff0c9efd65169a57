"""Behavior tests for Artifact Authority Service semantics."""

from __future__ import annotations

import hashlib
import io
from datetime import UTC, datetime
from pathlib import Path
from typing import BinaryIO, Callable

from sqlalchemy.exc import OperationalError

from packages.proxy_shared.envelope import Envelope, EnvelopeKind, EnvelopeMeta, new_meta
from packages.proxy_shared.errors import ErrorCategory
from resources.substrates.filesystem import (
    BlobNotFoundError,
    FilesystemHealthStatus,
    Namespace,
    StagedBlob,
    StorageIOError,
)
from services.state.artifact_authority.config import ArtifactAuthoritySettings
from services.state.artifact_authority.domain import ConsignmentRecord, MediaRecord
from services.state.artifact_authority.errors import DuplicateKeyError
from services.state.artifact_authority.implementation import (
    DefaultArtifactAuthorityService,
)
from services.state.artifact_authority.interfaces import ArtifactRecord


class _FakeBlobStore:
    """In-memory blob substrate fake for service behavior tests."""

    def __init__(self) -> None:
        self.staged: dict[Path, bytes] = {}
        self.blobs: dict[tuple[Namespace, str], bytes] = {}
        self.raise_on_commit: Exception | None = None
        self.ready = True
        self._counter = 0

    def ensure_directories(self) -> None:
        return None

    def health(self) -> FilesystemHealthStatus:
        return FilesystemHealthStatus(
            ready=self.ready, detail="ok" if self.ready else "media not writable"
        )

    def stage(self, content: bytes | BinaryIO) -> StagedBlob:
        self._counter += 1
        path = Path(f"/staging/{self._counter}")
        data = content if isinstance(content, bytes) else content.read()
        self.staged[path] = data
        return StagedBlob(path=path)

    def fingerprint(self, staged: StagedBlob) -> str:
        return hashlib.sha256(self.staged[staged.path]).hexdigest()

    def commit(
        self, staged: StagedBlob, *, namespace: Namespace, content_ref: str
    ) -> Path:
        if self.raise_on_commit is not None:
            raise self.raise_on_commit
        data = self.staged.pop(staged.path)
        self.blobs.setdefault((namespace, content_ref), data)
        return Path(f"/{namespace.value}/{content_ref}")

    def discard_staging(self, staged: StagedBlob) -> None:
        self.staged.pop(staged.path, None)

    def read(self, *, namespace: Namespace, content_ref: str) -> bytes:
        try:
            return self.blobs[(namespace, content_ref)]
        except KeyError as exc:
            raise BlobNotFoundError(content_ref) from exc


class _FakeRepository:
    """In-memory metadata repository fake with injectable races."""

    def __init__(self) -> None:
        self.rows: dict[tuple[Namespace, str], ArtifactRecord] = {}
        self.raise_on_find: Exception | None = None
        self.raise_on_insert: Exception | None = None
        self.insert_race_ref: str | None = None
        self.before_insert: Callable[[], None] | None = None
        self.ack_race_value: bool | None = None

    def find_by_key(self, *, namespace: Namespace, key: str) -> ArtifactRecord | None:
        if self.raise_on_find is not None:
            raise self.raise_on_find
        return self.rows.get((namespace, key))

    def insert(
        self, *, namespace: Namespace, key: str, content_ref: str
    ) -> ArtifactRecord:
        if self.raise_on_insert is not None:
            raise self.raise_on_insert
        if self.before_insert is not None:
            hook, self.before_insert = self.before_insert, None
            hook()
        if self.insert_race_ref is not None:
            self._put(namespace, key, self.insert_race_ref)
            self.insert_race_ref = None
        if (namespace, key) in self.rows:
            raise DuplicateKeyError(namespace=namespace, key=key)
        return self._put(namespace, key, content_ref)

    def set_ack(self, *, blinded_utxo: str, ack: bool) -> bool:
        key = (Namespace.CONSIGNMENT, blinded_utxo)
        if self.ack_race_value is not None:
            self._set_ack(key, self.ack_race_value)
            self.ack_race_value = None
        record = self.rows.get(key)
        if not isinstance(record, ConsignmentRecord) or record.ack is not None:
            return False
        self._set_ack(key, ack)
        return True

    def ping(self) -> bool:
        return True

    def _put(self, namespace: Namespace, key: str, content_ref: str) -> ArtifactRecord:
        now = datetime.now(tz=UTC)
        record: ArtifactRecord
        if namespace is Namespace.CONSIGNMENT:
            record = ConsignmentRecord(
                blinded_utxo=key, content_ref=content_ref, created_at=now
            )
        else:
            record = MediaRecord(attachment_id=key, content_ref=content_ref, created_at=now)
        self.rows[(namespace, key)] = record
        return record

    def _set_ack(self, key: tuple[Namespace, str], ack: bool) -> None:
        record = self.rows[key]
        assert isinstance(record, ConsignmentRecord)
        self.rows[key] = record.model_copy(update={"ack": ack})


def _meta() -> EnvelopeMeta:
    """Return valid envelope metadata for test requests."""
    return new_meta(kind=EnvelopeKind.COMMAND, source="test", principal="operator")


def _service() -> tuple[DefaultArtifactAuthorityService, _FakeRepository, _FakeBlobStore]:
    """Build deterministic service with in-memory dependencies."""
    repo = _FakeRepository()
    blob = _FakeBlobStore()
    service = DefaultArtifactAuthorityService(
        settings=ArtifactAuthoritySettings(),
        repository=repo,
        blob_store=blob,
        version="9.9.9",
    )
    return service, repo, blob


def _ref(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def _post_consignment(
    service: DefaultArtifactAuthorityService, key: str, content: bytes
) -> Envelope[bool]:
    return service.post_consignment(
        meta=_meta(), params={"blinded_utxo": key}, upload=content
    )


def test_server_info_reports_version_protocol_and_uptime() -> None:
    """Server info should echo configured identity with integer uptime."""
    service, _repo, _blob = _service()

    result = service.server_info(meta=_meta())

    assert result.ok is True
    assert result.value is not None
    assert result.value.version == "9.9.9"
    assert result.value.protocol_version == "0.1"
    assert result.value.uptime >= 0


def test_post_then_get_consignment_round_trip() -> None:
    """A stored consignment should be readable by its blinded UTXO."""
    service, repo, blob = _service()

    created = _post_consignment(service, "utxob:1", b"payload")
    fetched = service.get_consignment(meta=_meta(), params={"blinded_utxo": "utxob:1"})

    assert created.ok is True
    assert created.value is True
    assert fetched.value == b"payload"
    assert repo.rows[(Namespace.CONSIGNMENT, "utxob:1")].content_ref == _ref(b"payload")
    assert blob.staged == {}


def test_post_accepts_file_like_uploads() -> None:
    """Streaming uploads should be staged like raw bytes."""
    service, _repo, blob = _service()

    result = service.post_media(
        meta=_meta(),
        params={"attachment_id": "att-1"},
        upload=io.BytesIO(b"image-bytes"),
    )

    assert result.value is True
    assert blob.blobs[(Namespace.MEDIA, _ref(b"image-bytes"))] == b"image-bytes"


def test_reupload_identical_content_is_a_noop() -> None:
    """Same key and same bytes should return False without side effects."""
    service, _repo, blob = _service()
    _post_consignment(service, "utxob:1", b"same")

    repeat = _post_consignment(service, "utxob:1", b"same")

    assert repeat.ok is True
    assert repeat.value is False
    assert len(blob.blobs) == 1
    assert blob.staged == {}


def test_reupload_different_content_conflicts() -> None:
    """Stored content must never be replaced under the same key."""
    service, repo, blob = _service()
    _post_consignment(service, "utxob:1", b"first")

    second = _post_consignment(service, "utxob:1", b"second")

    assert second.ok is False
    assert second.errors[0].code == "CANNOT_CHANGE_UPLOADED_FILE"
    assert second.errors[0].category is ErrorCategory.CONFLICT
    assert repo.rows[(Namespace.CONSIGNMENT, "utxob:1")].content_ref == _ref(b"first")
    assert (Namespace.CONSIGNMENT, _ref(b"second")) not in blob.blobs
    assert blob.staged == {}


def test_identical_content_under_two_keys_shares_one_blob() -> None:
    """Content addressing should deduplicate blobs across keys."""
    service, repo, blob = _service()

    first = _post_consignment(service, "utxob:a", b"shared")
    second = _post_consignment(service, "utxob:b", b"shared")

    assert first.value is True
    assert second.value is True
    assert len(repo.rows) == 2
    assert list(blob.blobs) == [(Namespace.CONSIGNMENT, _ref(b"shared"))]


def test_namespaces_are_disjoint() -> None:
    """A media key must not resolve a consignment with the same name."""
    service, _repo, _blob = _service()
    _post_consignment(service, "shared-key", b"x")

    media = service.get_media(meta=_meta(), params={"attachment_id": "shared-key"})

    assert media.ok is False
    assert media.errors[0].code == "NOT_FOUND_MEDIA"


def test_missing_upload_reports_missing_file() -> None:
    """Uploads without file content should fail validation."""
    service, repo, _blob = _service()

    result = service.post_consignment(
        meta=_meta(), params={"blinded_utxo": "utxob:1"}, upload=None
    )

    assert result.errors[0].code == "MISSING_FILE"
    assert repo.rows == {}


def test_param_errors_precede_missing_file() -> None:
    """Parameter validation runs before file presence is considered."""
    service, _repo, _blob = _service()

    result = service.post_media(meta=_meta(), params={}, upload=None)

    assert result.errors[0].code == "MISSING_ATTACHMENT_ID"


def test_param_errors_reject_upload_before_anything_is_stored() -> None:
    """A rejected request leaves no staged file, blob, or record behind."""
    service, repo, blob = _service()

    result = service.post_consignment(meta=_meta(), params={}, upload=b"payload")

    assert result.errors[0].code == "MISSING_BLINDED_UTXO"
    assert blob.staged == {}
    assert blob.blobs == {}
    assert repo.rows == {}


def test_lost_insert_race_with_same_content_is_noop() -> None:
    """A concurrent winner with identical content turns this upload into a no-op."""
    service, repo, blob = _service()
    repo.insert_race_ref = _ref(b"same")

    result = _post_consignment(service, "utxob:1", b"same")

    assert result.ok is True
    assert result.value is False
    assert (Namespace.CONSIGNMENT, _ref(b"same")) in blob.blobs


def test_lost_insert_race_with_other_content_conflicts_and_keeps_blob() -> None:
    """A losing writer reports the conflict and leaves committed blobs in place."""
    service, repo, blob = _service()
    repo.insert_race_ref = _ref(b"winner")

    result = _post_consignment(service, "utxob:1", b"loser")

    assert result.errors[0].code == "CANNOT_CHANGE_UPLOADED_FILE"
    assert (Namespace.CONSIGNMENT, _ref(b"loser")) in blob.blobs
    assert blob.staged == {}


def test_lost_insert_race_keeps_blob_committed_by_concurrent_other_key() -> None:
    """A loser must not remove bytes that another key stored meanwhile."""
    service, repo, blob = _service()
    concurrent: list[Envelope[bool]] = []

    def interleave() -> None:
        concurrent.append(_post_consignment(service, "utxob:1", b"first"))
        concurrent.append(_post_consignment(service, "utxob:2", b"second"))

    repo.before_insert = interleave

    loser = _post_consignment(service, "utxob:1", b"second")
    fetched = service.get_consignment(
        meta=_meta(), params={"blinded_utxo": "utxob:2"}
    )

    assert [r.value for r in concurrent] == [True, True]
    assert loser.errors[0].code == "CANNOT_CHANGE_UPLOADED_FILE"
    assert fetched.ok is True
    assert fetched.value == b"second"
    assert (Namespace.CONSIGNMENT, _ref(b"second")) in blob.blobs


def test_insert_failure_keeps_blob_shared_with_other_keys() -> None:
    """A failed insert leaves the blob shared with other keys in place."""
    service, repo, blob = _service()
    _post_consignment(service, "utxob:a", b"shared")
    repo.raise_on_insert = OperationalError("INSERT", {}, Exception("locked"))

    result = _post_consignment(service, "utxob:b", b"shared")

    assert result.ok is False
    assert result.errors[0].category is ErrorCategory.DEPENDENCY
    assert (Namespace.CONSIGNMENT, _ref(b"shared")) in blob.blobs


def test_commit_failure_maps_to_storage_error_and_discards_staging() -> None:
    """Filesystem failures surface as dependency errors with no staged leftovers."""
    service, repo, blob = _service()
    blob.raise_on_commit = StorageIOError("disk full")

    result = _post_consignment(service, "utxob:1", b"data")

    assert result.errors[0].code == "STORAGE_IO_ERROR"
    assert result.errors[0].category is ErrorCategory.DEPENDENCY
    assert blob.staged == {}
    assert repo.rows == {}


def test_get_reports_missing_blob_for_dangling_record() -> None:
    """A record whose blob vanished should report a non-retryable dependency error."""
    service, repo, _blob = _service()
    repo.insert(namespace=Namespace.MEDIA, key="att-1", content_ref="a" * 64)

    result = service.get_media(meta=_meta(), params={"attachment_id": "att-1"})

    assert result.errors[0].code == "BLOB_NOT_FOUND"
    assert result.errors[0].retryable is False


def test_unexpected_repository_exception_maps_to_dependency_failure() -> None:
    """Unknown exceptions should never escape the service boundary."""
    service, repo, _blob = _service()
    repo.raise_on_find = RuntimeError("boom")

    result = service.get_consignment(meta=_meta(), params={"blinded_utxo": "x"})

    assert result.errors[0].code == "DEPENDENCY_FAILURE"
    assert result.errors[0].metadata["exception_type"] == "RuntimeError"


def test_get_ack_on_undecided_consignment_is_none() -> None:
    """A fresh consignment has no recorded decision."""
    service, _repo, _blob = _service()
    _post_consignment(service, "utxob:1", b"x")

    result = service.get_ack(meta=_meta(), params={"blinded_utxo": "utxob:1"})

    assert result.ok is True
    assert result.value is None


def test_post_ack_sets_once_and_repeats_as_noop() -> None:
    """The generic setter returns True once, then False for the same value."""
    service, _repo, _blob = _service()
    _post_consignment(service, "utxob:1", b"x")

    first = service.post_ack(meta=_meta(), params={"blinded_utxo": "utxob:1", "ack": True})
    repeat = service.post_ack(meta=_meta(), params={"blinded_utxo": "utxob:1", "ack": True})
    flipped = service.post_ack(
        meta=_meta(), params={"blinded_utxo": "utxob:1", "ack": False}
    )
    read = service.get_ack(meta=_meta(), params={"blinded_utxo": "utxob:1"})

    assert first.value is True
    assert repeat.value is False
    assert flipped.errors[0].code == "CANNOT_CHANGE_ACK"
    assert read.value is True


def test_post_ack_unknown_consignment_is_not_found() -> None:
    """Acking a missing consignment reports not found."""
    service, _repo, _blob = _service()

    result = service.post_ack(meta=_meta(), params={"blinded_utxo": "nope", "ack": False})

    assert result.errors[0].code == "NOT_FOUND_CONSIGNMENT"


def test_post_ack_validates_ack_before_lookup() -> None:
    """Bad ack values are rejected even for unknown consignments."""
    service, _repo, _blob = _service()

    result = service.post_ack(
        meta=_meta(), params={"blinded_utxo": "nope", "ack": "true"}
    )

    assert result.errors[0].code == "INVALID_ACK"


def test_post_ack_losing_race_resolves_against_winner() -> None:
    """A concurrent decision is compared like a recorded one."""
    service, repo, _blob = _service()
    _post_consignment(service, "a", b"x")
    _post_consignment(service, "b", b"y")

    repo.ack_race_value = True
    same = service.post_ack(meta=_meta(), params={"blinded_utxo": "a", "ack": True})
    repo.ack_race_value = True
    other = service.post_ack(meta=_meta(), params={"blinded_utxo": "b", "ack": False})

    assert same.ok is True
    assert same.value is False
    assert other.errors[0].code == "CANNOT_CHANGE_ACK"


def test_respond_records_once_then_rejects_any_repeat() -> None:
    """Legacy responses succeed only while undecided."""
    service, _repo, _blob = _service()
    _post_consignment(service, "utxob:1", b"x")

    nack = service.respond(meta=_meta(), params={"blinded_utxo": "utxob:1"}, ack=False)
    again = service.respond(meta=_meta(), params={"blinded_utxo": "utxob:1"}, ack=False)
    read = service.get_ack(meta=_meta(), params={"blinded_utxo": "utxob:1"})

    assert nack.value is True
    assert again.errors[0].code == "ALREADY_RESPONDED"
    assert read.value is False


def test_respond_losing_race_reports_already_responded() -> None:
    """A decision recorded between lookup and update rejects the response."""
    service, repo, _blob = _service()
    _post_consignment(service, "utxob:1", b"x")
    repo.ack_race_value = True

    result = service.respond(meta=_meta(), params={"blinded_utxo": "utxob:1"}, ack=True)

    assert result.errors[0].code == "ALREADY_RESPONDED"


def test_health_reports_blob_substrate_failure() -> None:
    """Substrate readiness should be reported separately from the database."""
    service, _repo, blob = _service()
    blob.ready = False

    result = service.health(meta=_meta())

    assert result.value is not None
    assert result.value.service_ready is True
    assert result.value.substrate_ready is False
    assert "media not writable" in result.value.detail


def test_invalid_meta_is_rejected_before_work() -> None:
    """Envelope metadata must be validated first."""
    service, repo, _blob = _service()
    meta = new_meta(kind=EnvelopeKind.UNSPECIFIED, source="", principal="")

    result = service.post_consignment(
        meta=meta, params={"blinded_utxo": "utxob:1"}, upload=b"x"
    )

    assert result.ok is False
    assert result.errors[0].category is ErrorCategory.VALIDATION
    assert repo.rows == {}
