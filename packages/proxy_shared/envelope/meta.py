"""Per-call metadata attached to every service result.

Request surfaces create one ``EnvelopeMeta`` per inbound call: ``source`` names
the surface (``jsonrpc`` or ``rest``) and ``principal`` the client address.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4


class EnvelopeKind(str, Enum):
    """Whether a call reads state or asks to change it."""

    UNSPECIFIED = "unspecified"
    COMMAND = "command"
    QUERY = "query"
    RESULT = "result"


def _new_id() -> str:
    return uuid4().hex


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(frozen=True)
class EnvelopeMeta:
    """Correlation ids, intent and caller identity for one call."""

    kind: EnvelopeKind
    source: str
    principal: str
    envelope_id: str = field(default_factory=_new_id)
    trace_id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", _as_utc(self.timestamp))


def new_meta(
    *,
    kind: EnvelopeKind,
    source: str,
    principal: str,
    trace_id: str | None = None,
    envelope_id: str | None = None,
    timestamp: datetime | None = None,
) -> EnvelopeMeta:
    """Build metadata, generating ids and timestamp when not supplied."""
    return EnvelopeMeta(
        kind=kind,
        source=source,
        principal=principal,
        envelope_id=envelope_id or _new_id(),
        trace_id=trace_id or _new_id(),
        timestamp=datetime.now(UTC) if timestamp is None else timestamp,
    )
