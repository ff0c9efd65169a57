"""Instrumentation for service operations.

``public_api_instrumented`` wraps one service method. It reads correlation ids
from the ``meta`` keyword and reference ids (a blinded UTXO, an attachment id)
from keyword arguments or the raw ``params`` mapping, so a rejected request is
still traceable. Each concern receives an invocation and a completion event; a
concern that raises is logged and skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from time import perf_counter
from typing import Any, Callable, Mapping, Protocol, Sequence

from . import fields
from .context import log_context


@dataclass(frozen=True)
class InvocationContext:
    """Who called which operation, about which keys."""

    component_id: str
    api_name: str
    trace_id: str | None
    envelope_id: str | None
    principal: str | None
    references: Mapping[str, str]

    def log_fields(self) -> dict[str, object]:
        return {
            fields.EVENT: fields.PUBLIC_API_INVOCATION_EVENT,
            fields.COMPONENT_ID: self.component_id,
            fields.API_NAME: self.api_name,
            fields.TRACE_ID: self.trace_id,
            fields.ENVELOPE_ID: self.envelope_id,
            fields.PRINCIPAL: self.principal,
            **self.references,
        }


@dataclass(frozen=True)
class CompletionContext:
    """Outcome of one invocation."""

    invocation: InvocationContext
    success: bool
    duration_ms: float
    errors: list[str]
    error_categories: list[str]

    @classmethod
    def from_result(
        cls, invocation: InvocationContext, result: Any, duration_ms: float
    ) -> "CompletionContext":
        """Summarize an envelope result; errors are reported by code and message."""
        details = list(getattr(result, "errors", None) or [])
        return cls(
            invocation=invocation,
            success=bool(getattr(result, "ok", not details)),
            duration_ms=duration_ms,
            errors=[detail.summary for detail in details],
            error_categories=[detail.category.value for detail in details],
        )

    @classmethod
    def from_exception(
        cls, invocation: InvocationContext, exc: Exception, duration_ms: float
    ) -> "CompletionContext":
        return cls(
            invocation=invocation,
            success=False,
            duration_ms=duration_ms,
            errors=[f"{type(exc).__name__}: {exc}"],
            error_categories=["internal"],
        )


class PublicApiInstrumentationConcern(Protocol):
    """Receiver for instrumentation events."""

    def on_invocation(self, context: InvocationContext) -> None: ...

    def on_completion(self, context: CompletionContext) -> None: ...


class PublicApiLoggingConcern:
    """Log each invocation and its completion with structured context."""

    def __init__(self, *, logger: Any) -> None:
        self._logger = logger

    def on_invocation(self, context: InvocationContext) -> None:
        with log_context(context.log_fields()):
            self._logger.info("Public API invocation")

    def on_completion(self, context: CompletionContext) -> None:
        completion = context.invocation.log_fields()
        completion[fields.EVENT] = fields.PUBLIC_API_COMPLETION_EVENT
        completion[fields.SUCCESS] = context.success
        completion[fields.DURATION_MS] = context.duration_ms
        completion[fields.ERRORS] = context.errors
        log = self._logger.info if context.success else self._logger.warning
        with log_context(completion):
            log("Public API completion")


class _Instrumentation:
    """Per-method state shared by every call through one wrapper."""

    def __init__(
        self,
        *,
        component_id: str,
        api_name: str,
        id_fields: tuple[str, ...],
        concerns: tuple[PublicApiInstrumentationConcern, ...],
        logger: Any | None,
    ) -> None:
        self._component_id = component_id
        self._api_name = api_name
        self._id_fields = id_fields
        self._concerns = concerns
        self._logger = logger

    def begin(self, kwargs: Mapping[str, Any]) -> InvocationContext:
        meta = kwargs.get("meta")
        invocation = InvocationContext(
            component_id=self._component_id,
            api_name=self._api_name,
            trace_id=_meta_field(meta, "trace_id"),
            envelope_id=_meta_field(meta, "envelope_id"),
            principal=_meta_field(meta, "principal"),
            references=self._references(kwargs),
        )
        self._notify("invocation", invocation, invocation)
        return invocation

    def complete(self, context: CompletionContext) -> None:
        self._notify("completion", context.invocation, context)

    def _references(self, kwargs: Mapping[str, Any]) -> dict[str, str]:
        params = kwargs.get("params")
        sources = [kwargs, params] if isinstance(params, Mapping) else [kwargs]
        references: dict[str, str] = {}
        for name in self._id_fields:
            value = next(
                (s[name] for s in sources if s.get(name) not in (None, "")), None
            )
            if value is not None:
                references[name] = str(value)
        return references

    def _notify(
        self, stage: str, invocation: InvocationContext, context: object
    ) -> None:
        for concern in self._concerns:
            try:
                getattr(concern, f"on_{stage}")(context)
            except Exception as exc:  # noqa: BLE001
                self._report_concern_failure(stage, concern, exc, invocation)

    def _report_concern_failure(
        self,
        stage: str,
        concern: object,
        exc: Exception,
        invocation: InvocationContext,
    ) -> None:
        if self._logger is None:
            return
        with log_context(
            {
                fields.EVENT: fields.PUBLIC_API_INSTRUMENTATION_FAILURE_EVENT,
                fields.COMPONENT_ID: invocation.component_id,
                fields.API_NAME: invocation.api_name,
                fields.STAGE: stage,
                fields.CONCERN: type(concern).__name__,
                fields.ERRORS: [f"{type(exc).__name__}: {exc}"],
            }
        ):
            self._logger.warning("Public API instrumentation concern failed")


def public_api_instrumented(
    *,
    component_id: str,
    api_name: str | None = None,
    id_fields: tuple[str, ...] = (),
    concerns: Sequence[PublicApiInstrumentationConcern] | None = None,
    logger: Any | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Instrument one service method.

    Passing ``logger`` adds a ``PublicApiLoggingConcern`` ahead of ``concerns``.
    At least one concern is required.
    """
    active = tuple(concerns or ())
    if logger is not None:
        active = (PublicApiLoggingConcern(logger=logger), *active)
    if not active:
        raise ValueError("public_api_instrumented requires at least one concern")

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        instrumentation = _Instrumentation(
            component_id=component_id,
            api_name=api_name or func.__name__,
            id_fields=id_fields,
            concerns=active,
            logger=logger,
        )

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            invocation = instrumentation.begin(kwargs)
            started = perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                instrumentation.complete(
                    CompletionContext.from_exception(
                        invocation, exc, _elapsed_ms(started)
                    )
                )
                raise
            instrumentation.complete(
                CompletionContext.from_result(invocation, result, _elapsed_ms(started))
            )
            return result

        return wrapper

    return decorator


def _elapsed_ms(started: float) -> float:
    return round((perf_counter() - started) * 1000.0, 3)


def _meta_field(meta: object | None, name: str) -> str | None:
    value = getattr(meta, name, None)
    return None if value in (None, "") else str(value)
