"""Tests for the public API instrumentation decorator and its concerns."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from packages.proxy_shared.envelope import EnvelopeKind, failure, new_meta, success
from packages.proxy_shared.errors import not_found_error
from packages.proxy_shared.logging import get_context, public_api_instrumented
from packages.proxy_shared.logging.public_api import (
    CompletionContext,
    InvocationContext,
)


class _RecordingConcern:
    """Concern double capturing invocation and completion contexts."""

    def __init__(self) -> None:
        self.invocations: list[InvocationContext] = []
        self.completions: list[CompletionContext] = []

    def on_invocation(self, context: InvocationContext) -> None:
        self.invocations.append(context)

    def on_completion(self, context: CompletionContext) -> None:
        self.completions.append(context)


class _ExplodingConcern:
    def on_invocation(self, context: InvocationContext) -> None:
        raise RuntimeError("broken hook")

    def on_completion(self, context: CompletionContext) -> None:
        raise RuntimeError("broken hook")


class _ContextLogger:
    """Logger double capturing the logging context active at each call."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str, dict[str, str]]] = []

    def info(self, message: str, *args: Any) -> None:
        self.records.append(("info", message, get_context()))

    def warning(self, message: str, *args: Any) -> None:
        self.records.append(("warning", message, get_context()))


def _meta():
    return new_meta(
        kind=EnvelopeKind.QUERY,
        source="test",
        principal="operator",
        trace_id="trace-1",
        envelope_id="env-1",
    )


def test_invocation_context_carries_meta_and_param_references() -> None:
    """References are read from raw params so they log before validation."""
    concern = _RecordingConcern()

    @public_api_instrumented(
        component_id="service_artifact_authority",
        id_fields=("blinded_utxo",),
        concerns=[concern],
    )
    def get_ack(*, meta: Any, params: Any) -> Any:
        return success(meta=meta, payload=None)

    get_ack(meta=_meta(), params={"blinded_utxo": "utxob:1"})

    invocation = concern.invocations[0]
    assert invocation.api_name == "get_ack"
    assert invocation.trace_id == "trace-1"
    assert invocation.envelope_id == "env-1"
    assert invocation.principal == "operator"
    assert invocation.references == {"blinded_utxo": "utxob:1"}
    assert concern.completions[0].success is True


def test_failed_envelope_reports_codes_and_categories() -> None:
    concern = _RecordingConcern()

    @public_api_instrumented(component_id="svc", concerns=[concern])
    def get_media(*, meta: Any) -> Any:
        return failure(
            meta=meta,
            errors=[not_found_error("Media not found", code="NOT_FOUND_MEDIA")],
        )

    get_media(meta=_meta())

    completion = concern.completions[0]
    assert completion.success is False
    assert completion.errors == ["NOT_FOUND_MEDIA: Media not found"]
    assert completion.error_categories == ["not_found"]


def test_raised_exception_is_reported_then_propagated() -> None:
    concern = _RecordingConcern()

    @public_api_instrumented(component_id="svc", concerns=[concern])
    def explode(*, meta: Any) -> Any:
        raise ValueError("bad")

    with pytest.raises(ValueError):
        explode(meta=_meta())

    assert concern.completions[0].errors == ["ValueError: bad"]
    assert concern.completions[0].error_categories == ["internal"]


def test_logging_concern_binds_structured_fields() -> None:
    """Completion logs carry api name, success flag and references."""
    logger = _ContextLogger()

    @public_api_instrumented(
        component_id="svc", id_fields=("attachment_id",), logger=logger
    )
    def get_media(*, meta: Any, params: Any) -> Any:
        return success(meta=meta, payload=b"x")

    get_media(meta=_meta(), params={"attachment_id": "att-1"})

    assert [(level, message) for level, message, _ in logger.records] == [
        ("info", "Public API invocation"),
        ("info", "Public API completion"),
    ]
    completion_context = logger.records[1][2]
    assert completion_context["api_name"] == "get_media"
    assert completion_context["attachment_id"] == "att-1"
    assert completion_context["success"] == "True"


def test_concern_failures_are_isolated(caplog: pytest.LogCaptureFixture) -> None:
    """A broken concern must not break the decorated call."""
    logger = logging.getLogger("tests.public_api")
    caplog.set_level(logging.WARNING, logger="tests.public_api")

    @public_api_instrumented(
        component_id="svc", concerns=[_ExplodingConcern()], logger=logger
    )
    def server_info(*, meta: Any) -> Any:
        return success(meta=meta, payload="ok")

    result = server_info(meta=_meta())

    assert result.value == "ok"
    assert [r.getMessage() for r in caplog.records] == [
        "Public API instrumentation concern failed",
        "Public API instrumentation concern failed",
    ]


def test_decorator_requires_a_concern() -> None:
    with pytest.raises(ValueError):
        public_api_instrumented(component_id="svc")
