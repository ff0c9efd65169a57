"""Structured error values shared by proxy packages, resources and services."""

from . import codes
from .builders import (
    conflict_error,
    dependency_error,
    internal_error,
    make_error,
    not_found_error,
    validation_error,
)
from .types import ErrorCategory, ErrorDetail

__all__ = [
    "ErrorCategory",
    "ErrorDetail",
    "codes",
    "conflict_error",
    "dependency_error",
    "internal_error",
    "make_error",
    "not_found_error",
    "validation_error",
]
