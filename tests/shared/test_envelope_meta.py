"""Tests for envelope metadata creation, normalization, and validation."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

from packages.proxy_shared.envelope import EnvelopeKind, new_meta, validate_meta
from packages.proxy_shared.errors import ErrorCategory


def test_new_meta_generates_ids_and_normalizes_naive_timestamp() -> None:
    """new_meta should create ids and attach UTC to naive timestamps."""
    timestamp = datetime(2026, 1, 1, 12, 0, 0)

    meta = new_meta(
        kind=EnvelopeKind.QUERY,
        source="jsonrpc",
        principal="127.0.0.1",
        timestamp=timestamp,
    )

    assert meta.envelope_id
    assert meta.trace_id
    assert meta.envelope_id != meta.trace_id
    assert meta.timestamp == timestamp.replace(tzinfo=UTC)


def test_new_meta_converts_aware_timestamp_to_utc() -> None:
    """Offset timestamps should be shifted to UTC."""
    offset = timezone(timedelta(hours=2))

    meta = new_meta(
        kind=EnvelopeKind.COMMAND,
        source="rest",
        principal="client",
        timestamp=datetime(2026, 1, 1, 14, 0, 0, tzinfo=offset),
    )

    assert meta.timestamp == datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


def test_validate_meta_accepts_complete_metadata() -> None:
    meta = new_meta(kind=EnvelopeKind.QUERY, source="rest", principal="client")

    assert validate_meta(meta) == []


def test_validate_meta_rejects_unspecified_kind() -> None:
    """Unspecified intent should fail with one validation error."""
    meta = new_meta(kind=EnvelopeKind.UNSPECIFIED, source="rest", principal="client")

    errors = validate_meta(meta)

    assert len(errors) == 1
    assert errors[0].code == "INVALID_ARGUMENT"
    assert errors[0].category is ErrorCategory.VALIDATION
    assert errors[0].message == "metadata.kind must be specified"


def test_validate_meta_requires_principal() -> None:
    meta = new_meta(kind=EnvelopeKind.QUERY, source="rest", principal="")

    errors = validate_meta(meta)

    assert [error.message for error in errors] == ["metadata.principal is required"]
