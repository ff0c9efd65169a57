"""Shorthand constructors for service results."""

from __future__ import annotations

from typing import Iterable, TypeVar

from packages.proxy_shared.errors import ErrorDetail

from .envelope import Envelope, Payload
from .meta import EnvelopeMeta

T = TypeVar("T")


def success(*, meta: EnvelopeMeta, payload: T) -> Envelope[T]:
    """Wrap ``payload`` as a successful result."""
    return Envelope[T](metadata=meta, payload=Payload[T](value=payload))


def failure(*, meta: EnvelopeMeta, errors: Iterable[ErrorDetail]) -> Envelope[T]:
    """Build a result with no payload; ``errors`` must not be empty."""
    collected = list(errors)
    if not collected:
        raise ValueError("failure requires at least one error")
    return Envelope[T](metadata=meta, errors=collected)
