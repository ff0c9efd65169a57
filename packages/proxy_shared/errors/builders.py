"""Builders for ``ErrorDetail`` values, one per category."""

from __future__ import annotations

from typing import Mapping

from . import codes
from .types import ErrorCategory, ErrorDetail


def make_error(
    category: ErrorCategory,
    message: str,
    *,
    code: str,
    retryable: bool = False,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """Build one error, copying ``metadata`` so callers can reuse theirs."""
    return ErrorDetail(
        code=code,
        message=message,
        category=category,
        retryable=retryable,
        metadata=dict(metadata or {}),
    )


def validation_error(
    message: str,
    *,
    code: str = codes.VALIDATION_ERROR,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """Caller input was missing or malformed."""
    return make_error(ErrorCategory.VALIDATION, message, code=code, metadata=metadata)


def not_found_error(
    message: str,
    *,
    code: str = codes.NOT_FOUND,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """No record exists for the requested key."""
    return make_error(ErrorCategory.NOT_FOUND, message, code=code, metadata=metadata)


def conflict_error(
    message: str,
    *,
    code: str = codes.CONFLICT,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """The request contradicts state that may no longer change."""
    return make_error(ErrorCategory.CONFLICT, message, code=code, metadata=metadata)


def dependency_error(
    message: str,
    *,
    code: str = codes.DEPENDENCY_FAILURE,
    retryable: bool = True,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """Storage or database failed underneath an otherwise valid request."""
    return make_error(
        ErrorCategory.DEPENDENCY,
        message,
        code=code,
        retryable=retryable,
        metadata=metadata,
    )


def internal_error(
    message: str,
    *,
    code: str = codes.INTERNAL_ERROR,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    return make_error(ErrorCategory.INTERNAL, message, code=code, metadata=metadata)
