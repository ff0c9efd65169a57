"""Structured fields bound to the current request for every log line.

Values live in a ``ContextVar`` so each request, whether served on the event
loop or in the threadpool, sees only its own fields.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Mapping

_FIELDS: ContextVar[Mapping[str, str]] = ContextVar("proxy_log_fields", default={})


def _merged(values: Mapping[str, object]) -> dict[str, str]:
    merged = dict(_FIELDS.get())
    merged.update(
        {str(key): str(value) for key, value in values.items() if value is not None}
    )
    return merged


def get_context() -> dict[str, str]:
    """Return a copy of the fields bound right now."""
    return dict(_FIELDS.get())


def bind_context(**values: object) -> None:
    """Bind fields until cleared; ``None`` values are skipped."""
    if values:
        _FIELDS.set(_merged(values))


def clear_context(*keys: str) -> None:
    """Drop the named fields, or all of them when no key is given."""
    if not keys:
        _FIELDS.set({})
        return
    _FIELDS.set({k: v for k, v in _FIELDS.get().items() if k not in keys})


@contextmanager
def log_context(values: Mapping[str, object]) -> Iterator[None]:
    """Bind ``values`` for the duration of the block only."""
    token = _FIELDS.set(_merged(values))
    try:
        yield
    finally:
        _FIELDS.reset(token)
