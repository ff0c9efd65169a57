"""Typed result wrapper returned by every service operation."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from packages.proxy_shared.errors import ErrorDetail

from .meta import EnvelopeMeta

T = TypeVar("T")


class Payload(BaseModel, Generic[T]):
    """Boxed result value, so ``False`` and ``None`` still count as present."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    value: T


class Envelope(BaseModel, Generic[T]):
    """Metadata plus either a payload or the errors that prevented one."""

    model_config = ConfigDict(frozen=True)

    metadata: EnvelopeMeta
    payload: Payload[T] | None = None
    errors: list[ErrorDetail] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def has_payload(self) -> bool:
        return self.payload is not None

    @property
    def value(self) -> T | None:
        """Unwrapped payload, ``None`` when the call produced none."""
        if self.payload is None:
            return None
        return self.payload.value

    @property
    def first_error(self) -> ErrorDetail | None:
        """Error that decides the wire response, if any."""
        return self.errors[0] if self.errors else None
