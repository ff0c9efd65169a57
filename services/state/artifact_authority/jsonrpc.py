"""JSON-RPC 2.0 method table and dispatcher for Artifact Authority Service.

The dispatcher is transport-agnostic: it takes an already decoded request
object (or batch) plus an optional uploaded file and returns the response
object to serialize, or ``None`` when every call was a notification.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from typing import Any, Callable, Literal, Mapping

from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr, ValidationError

from packages.proxy_shared.envelope import (
    Envelope,
    EnvelopeKind,
    EnvelopeMeta,
    new_meta,
)
from packages.proxy_shared.logging import fields, get_logger, log_context
from services.state.artifact_authority import errors
from services.state.artifact_authority.service import ArtifactAuthorityService, Upload

_LOGGER = get_logger(__name__)

JSONRPC_VERSION = "2.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603

APPLICATION_ERROR_CODES: dict[str, int] = {
    errors.CANNOT_CHANGE_UPLOADED_FILE: -100,
    errors.CANNOT_CHANGE_ACK: -101,
    errors.INVALID_ACK: -200,
    errors.INVALID_ATTACHMENT_ID: -201,
    errors.INVALID_BLINDED_UTXO: -202,
    errors.MISSING_ACK: -300,
    errors.MISSING_ATTACHMENT_ID: -301,
    errors.MISSING_BLINDED_UTXO: -302,
    errors.MISSING_FILE: -303,
    errors.NOT_FOUND_CONSIGNMENT: -400,
    errors.NOT_FOUND_MEDIA: -401,
}

RequestId = StrictStr | StrictInt | None


class JsonRpcRequest(BaseModel):
    """Validated shape of one JSON-RPC request object."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    jsonrpc: Literal["2.0"]
    method: StrictStr
    params: Any = None
    id: RequestId = None

    @property
    def is_notification(self) -> bool:
        """Return whether the request omitted ``id``."""
        return "id" not in self.model_fields_set


class JsonRpcParseError(Exception):
    """Request body or embedded params are not valid JSON."""


@dataclass(frozen=True)
class _Method:
    kind: EnvelopeKind
    call: Callable[[EnvelopeMeta, Any, Upload | None], Envelope[Any]]
    render: Callable[[Any], Any]


def _identity(value: Any) -> Any:
    return value


def encode_content(value: bytes) -> str:
    """Render blob bytes as the base64 text returned to clients."""
    return base64.b64encode(value).decode("ascii")


class JsonRpcDispatcher:
    """Route JSON-RPC calls to the service and render wire responses."""

    def __init__(
        self,
        *,
        service: ArtifactAuthorityService,
        log_truncate: int = 16,
    ) -> None:
        self._log_truncate = log_truncate
        self._methods: dict[str, _Method] = {
            "server.info": _Method(
                kind=EnvelopeKind.QUERY,
                call=lambda meta, params, upload: service.server_info(meta=meta),
                render=lambda info: info.model_dump(mode="json"),
            ),
            "consignment.get": _Method(
                kind=EnvelopeKind.QUERY,
                call=lambda meta, params, upload: service.get_consignment(
                    meta=meta, params=params
                ),
                render=encode_content,
            ),
            "consignment.post": _Method(
                kind=EnvelopeKind.COMMAND,
                call=lambda meta, params, upload: service.post_consignment(
                    meta=meta, params=params, upload=upload
                ),
                render=_identity,
            ),
            "media.get": _Method(
                kind=EnvelopeKind.QUERY,
                call=lambda meta, params, upload: service.get_media(
                    meta=meta, params=params
                ),
                render=encode_content,
            ),
            "media.post": _Method(
                kind=EnvelopeKind.COMMAND,
                call=lambda meta, params, upload: service.post_media(
                    meta=meta, params=params, upload=upload
                ),
                render=_identity,
            ),
            "ack.get": _Method(
                kind=EnvelopeKind.QUERY,
                call=lambda meta, params, upload: service.get_ack(
                    meta=meta, params=params
                ),
                render=_identity,
            ),
            "ack.post": _Method(
                kind=EnvelopeKind.COMMAND,
                call=lambda meta, params, upload: service.post_ack(
                    meta=meta, params=params
                ),
                render=_identity,
            ),
        }

    @property
    def methods(self) -> tuple[str, ...]:
        """Return registered method names."""
        return tuple(self._methods)

    def dispatch(
        self,
        payload: Any,
        *,
        upload: Upload | None = None,
        principal: str = "anonymous",
    ) -> dict[str, Any] | list[dict[str, Any]] | None:
        """Handle one request object or a batch.

        Uploads are only attached to single requests; batch members never
        receive a file.
        """
        if isinstance(payload, list):
            if not payload:
                return error_response(None, INVALID_REQUEST, "Invalid Request")
            responses = [
                response
                for item in payload
                if (response := self._dispatch_one(item, None, principal)) is not None
            ]
            return responses or None
        return self._dispatch_one(payload, upload, principal)

    def _dispatch_one(
        self, raw: Any, upload: Upload | None, principal: str
    ) -> dict[str, Any] | None:
        """Validate, execute and render one request object."""
        try:
            request = JsonRpcRequest.model_validate(_decode_params(raw))
        except JsonRpcParseError:
            return error_response(_raw_id(raw), PARSE_ERROR, "Parse error")
        except ValidationError:
            return error_response(_raw_id(raw), INVALID_REQUEST, "Invalid Request")

        with log_context(
            {
                fields.RPC_METHOD: request.method,
                fields.RPC_PARAMS: summarize_params(request.params, self._log_truncate),
                fields.RPC_CLIENT_ID: request.id,
            }
        ):
            _LOGGER.info("JSON-RPC request")
            response = self._execute(request, upload, principal)
            with log_context(
                {fields.RPC_RESPONSE: summarize_response(response, self._log_truncate)}
            ):
                _LOGGER.info("JSON-RPC response")

        if request.is_notification:
            return None
        return response

    def _execute(
        self, request: JsonRpcRequest, upload: Upload | None, principal: str
    ) -> dict[str, Any]:
        method = self._methods.get(request.method)
        if method is None:
            return error_response(request.id, METHOD_NOT_FOUND, "Method not found")

        meta = new_meta(kind=method.kind, source="jsonrpc", principal=principal)
        try:
            result = method.call(meta, request.params, upload)
            if result.ok:
                return success_response(request.id, method.render(result.value))
        except Exception:  # noqa: BLE001
            _LOGGER.exception("JSON-RPC method raised: method=%s", request.method)
            return error_response(request.id, INTERNAL_ERROR, "Internal error")
        return envelope_error_response(request.id, result)


def success_response(request_id: Any, result: Any) -> dict[str, Any]:
    """Build one JSON-RPC success response object."""
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_response(request_id: Any, code: int, message: str) -> dict[str, Any]:
    """Build one JSON-RPC error response object."""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "error": {"code": code, "message": message},
    }


def envelope_error_response(request_id: Any, result: Envelope[Any]) -> dict[str, Any]:
    """Map the first envelope error onto an application or internal error."""
    error = result.first_error
    code = None if error is None else APPLICATION_ERROR_CODES.get(error.code)
    if error is None or code is None:
        return error_response(request_id, INTERNAL_ERROR, "Internal error")
    return error_response(request_id, code, error.message)


def truncate_text(value: str, limit: int) -> str:
    """Shorten one string for logging, marking truncation with an ellipsis."""
    if len(value) <= limit:
        return value
    return value[:limit] + "..."


def join_entries(entries: Mapping[Any, Any], limit: int) -> str:
    """Render a mapping as ``<k: v, ...>`` with string values truncated."""
    parts = [
        f"{key}: {truncate_text(value, limit) if isinstance(value, str) else value}"
        for key, value in entries.items()
    ]
    return "<" + ", ".join(parts) + ">"


def summarize_params(params: Any, limit: int) -> str:
    """Return the log summary of request params; empty for non-objects."""
    if isinstance(params, Mapping):
        return join_entries(params, limit)
    return ""


def summarize_response(response: Mapping[str, Any], limit: int) -> str:
    """Return the log summary of one response object."""
    error = response.get("error")
    if isinstance(error, Mapping):
        return f"err <code: {error.get('code')}, message: {error.get('message')}>"
    result = response.get("result")
    if isinstance(result, Mapping):
        return "res " + join_entries(result, limit)
    if isinstance(result, str):
        return f"res <{truncate_text(result, limit)}>"
    return f"res <{json.dumps(result)}>"


def _decode_params(raw: Any) -> Any:
    """Decode string-encoded params, as sent by multipart clients."""
    if not isinstance(raw, Mapping):
        return raw
    params = raw.get("params")
    if not isinstance(params, str):
        return raw
    try:
        decoded = json.loads(params)
    except json.JSONDecodeError as exc:
        raise JsonRpcParseError("params is not valid JSON") from exc
    return {**raw, "params": decoded}


def _raw_id(raw: Any) -> Any:
    """Best-effort id echo for requests that failed validation."""
    if isinstance(raw, Mapping):
        value = raw.get("id")
        if isinstance(value, (str, int)) and not isinstance(value, bool):
            return value
    return None
