"""Envelope results shared by proxy services and request surfaces."""

from .builders import failure, success
from .envelope import Envelope, Payload
from .meta import EnvelopeKind, EnvelopeMeta, new_meta
from .validate import validate_meta

__all__ = [
    "Envelope",
    "EnvelopeKind",
    "EnvelopeMeta",
    "Payload",
    "failure",
    "new_meta",
    "success",
    "validate_meta",
]
