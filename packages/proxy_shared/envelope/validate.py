"""Checks applied to inbound metadata before any service work."""

from __future__ import annotations

from packages.proxy_shared.errors import ErrorDetail, codes, validation_error

from .meta import EnvelopeKind, EnvelopeMeta

_REQUIRED_FIELDS = ("envelope_id", "trace_id", "source", "principal")


def validate_meta(meta: EnvelopeMeta) -> list[ErrorDetail]:
    """Return at most one error describing the first unusable field."""
    for name in _REQUIRED_FIELDS:
        if not str(getattr(meta, name, "") or "").strip():
            return [_invalid(f"metadata.{name} is required")]
    if meta.kind is EnvelopeKind.UNSPECIFIED:
        return [_invalid("metadata.kind must be specified")]
    return []


def _invalid(message: str) -> ErrorDetail:
    return validation_error(message, code=codes.INVALID_ARGUMENT)
