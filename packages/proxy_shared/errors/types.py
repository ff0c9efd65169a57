"""Error values carried inside envelope results.

Service code never raises these. The JSON-RPC and REST adapters read the
``code`` and ``category`` of the first error to pick a wire code or status.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


class ErrorCategory(str, Enum):
    """Coarse failure classes that request surfaces map onto responses."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    DEPENDENCY = "dependency"
    INTERNAL = "internal"


@dataclass(frozen=True)
class ErrorDetail:
    """One failure reason: stable code, client message and log metadata."""

    code: str
    message: str
    category: ErrorCategory
    retryable: bool = False
    metadata: Mapping[str, str] = field(default_factory=dict)

    @property
    def summary(self) -> str:
        """Return the ``CODE: message`` form used in logs."""
        return f"{self.code}: {self.message}" if self.code else self.message
