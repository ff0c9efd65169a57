"""One-shot acknowledgment state machine for consignments.

A consignment starts ``UNDECIDED`` and moves at most once to ``ACKED`` or
``NACKED``; both are terminal. The generic setter treats a repeat of the
recorded value as a no-op, while the legacy entry points reject any call once
a decision exists.
"""

from __future__ import annotations

from enum import StrEnum

from services.state.artifact_authority.errors import (
    AckConflictError,
    AlreadyRespondedError,
)


class AckState(StrEnum):
    """Acknowledgment state of one consignment."""

    UNDECIDED = "undecided"
    ACKED = "acked"
    NACKED = "nacked"

    @classmethod
    def from_ack(cls, ack: bool | None) -> "AckState":
        """Map a stored ack column value to its state."""
        if ack is None:
            return cls.UNDECIDED
        return cls.ACKED if ack else cls.NACKED


class AckTransition(StrEnum):
    """Outcome of applying one requested ack value."""

    CHANGED = "changed"
    UNCHANGED = "unchanged"


def resolve_ack_transition(current: bool | None, requested: bool) -> AckTransition:
    """Decide how a generic ack request applies to the current value.

    Raises ``AckConflictError`` when a different decision is already recorded.
    """
    if current is None:
        return AckTransition.CHANGED
    if current is requested:
        return AckTransition.UNCHANGED
    raise AckConflictError(
        f"ack already recorded as {AckState.from_ack(current).value}"
    )


def require_undecided(current: bool | None) -> None:
    """Reject legacy responses once any decision is recorded."""
    if current is not None:
        raise AlreadyRespondedError(
            f"consignment already {AckState.from_ack(current).value}"
        )
