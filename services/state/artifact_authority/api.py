"""FastAPI surfaces for Artifact Authority Service.

Two request surfaces share one service instance: the JSON-RPC endpoint at
``POST /json-rpc`` and the REST routes kept for older clients. Only this
module decides HTTP statuses and wire shapes.
"""

from __future__ import annotations

from typing import Any, Mapping

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import FormData, UploadFile

from packages.proxy_shared.envelope import (
    Envelope,
    EnvelopeKind,
    EnvelopeMeta,
    new_meta,
)
from packages.proxy_shared.errors import ErrorCategory
from packages.proxy_shared.http import (
    InvalidJsonBodyError,
    client_address,
    is_form,
    read_json_body,
)
from packages.proxy_shared.logging import get_logger
from services.state.artifact_authority import errors
from services.state.artifact_authority.config import ArtifactAuthoritySettings
from services.state.artifact_authority.jsonrpc import (
    PARSE_ERROR,
    JsonRpcDispatcher,
    encode_content,
    error_response,
)
from services.state.artifact_authority.service import ArtifactAuthorityService

_LOGGER = get_logger(__name__)

_BLINDED_UTXO_MISSING = "blindedutxo missing!"
_ATTACHMENT_ID_MISSING = "attachment_id missing!"

_REST_ERRORS: dict[str, tuple[int, str]] = {
    errors.MISSING_BLINDED_UTXO: (400, _BLINDED_UTXO_MISSING),
    errors.INVALID_BLINDED_UTXO: (400, _BLINDED_UTXO_MISSING),
    errors.MISSING_ATTACHMENT_ID: (400, _ATTACHMENT_ID_MISSING),
    errors.INVALID_ATTACHMENT_ID: (400, _ATTACHMENT_ID_MISSING),
    errors.NOT_FOUND_CONSIGNMENT: (404, "No consignment found!"),
    errors.NOT_FOUND_MEDIA: (404, "No media found!"),
    errors.CANNOT_CHANGE_UPLOADED_FILE: (403, "Cannot change uploaded file!"),
    errors.ALREADY_RESPONDED: (403, "Already responded!"),
}

_CATEGORY_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.CONFLICT: 403,
    ErrorCategory.NOT_FOUND: 404,
}


def register_routes(
    app: FastAPI,
    *,
    service: ArtifactAuthorityService,
    settings: ArtifactAuthoritySettings,
) -> None:
    """Attach the JSON-RPC endpoint and REST routes to ``app``."""
    app.include_router(build_jsonrpc_router(service=service, settings=settings))
    app.include_router(build_rest_router(service=service))


def build_jsonrpc_router(
    *,
    service: ArtifactAuthorityService,
    settings: ArtifactAuthoritySettings,
) -> APIRouter:
    """Build the router serving ``POST /json-rpc``."""
    router = APIRouter()
    dispatcher = JsonRpcDispatcher(
        service=service, log_truncate=settings.jsonrpc_log_truncate
    )

    @router.post("/json-rpc")
    async def json_rpc(request: Request) -> Response:
        principal = client_address(request)
        if is_form(request):
            async with request.form() as form:
                upload = _form_file(form, "file")
                response = await run_in_threadpool(
                    dispatcher.dispatch,
                    _form_call(form),
                    upload=None if upload is None else upload.file,
                    principal=principal,
                )
        else:
            try:
                payload = await read_json_body(request)
            except InvalidJsonBodyError:
                return JSONResponse(error_response(None, PARSE_ERROR, "Parse error"))
            response = await run_in_threadpool(
                dispatcher.dispatch, payload, principal=principal
            )

        if response is None:
            return Response(status_code=204)
        return JSONResponse(response)

    return router


def build_rest_router(*, service: ArtifactAuthorityService) -> APIRouter:
    """Build the REST routes."""
    router = APIRouter()

    @router.get("/consignment")
    @router.get("/media")
    @router.get("/ack")
    def missing_path_key(request: Request) -> JSONResponse:
        message = (
            _ATTACHMENT_ID_MISSING
            if request.url.path.rstrip("/").endswith("/media")
            else _BLINDED_UTXO_MISSING
        )
        return _rest_error(400, message)

    @router.get("/consignment/{blindedutxo}")
    def get_consignment(blindedutxo: str, request: Request) -> JSONResponse:
        result = service.get_consignment(
            meta=_meta(request, EnvelopeKind.QUERY),
            params={"blinded_utxo": blindedutxo},
        )
        if not result.ok:
            return _rest_failure(result)
        return _rest_success(consignment=encode_content(result.value or b""))

    @router.post("/consignment")
    async def post_consignment(request: Request) -> JSONResponse:
        async with request.form() as form:
            upload = _form_file(form, "consignment")
            result = await run_in_threadpool(
                lambda: service.post_consignment(
                    meta=_meta(request, EnvelopeKind.COMMAND),
                    params=_rest_params(form, blinded_utxo="blindedutxo"),
                    upload=None if upload is None else upload.file,
                )
            )
        if not result.ok:
            return _rest_failure(
                result, missing_file_message="Consignment file is missing!"
            )
        return _rest_success()

    @router.get("/media/{attachment_id}")
    def get_media(attachment_id: str, request: Request) -> JSONResponse:
        result = service.get_media(
            meta=_meta(request, EnvelopeKind.QUERY),
            params={"attachment_id": attachment_id},
        )
        if not result.ok:
            return _rest_failure(result)
        return _rest_success(media=encode_content(result.value or b""))

    @router.post("/media")
    async def post_media(request: Request) -> JSONResponse:
        async with request.form() as form:
            upload = _form_file(form, "media")
            result = await run_in_threadpool(
                lambda: service.post_media(
                    meta=_meta(request, EnvelopeKind.COMMAND),
                    params=_rest_params(form, attachment_id="attachment_id"),
                    upload=None if upload is None else upload.file,
                )
            )
        if not result.ok:
            return _rest_failure(result, missing_file_message="Media file is missing!")
        return _rest_success()

    @router.post("/ack")
    async def post_ack(request: Request) -> JSONResponse:
        return await _respond(service, request, ack=True)

    @router.post("/nack")
    async def post_nack(request: Request) -> JSONResponse:
        return await _respond(service, request, ack=False)

    @router.get("/ack/{blindedutxo}")
    def get_ack(blindedutxo: str, request: Request) -> JSONResponse:
        result = service.get_ack(
            meta=_meta(request, EnvelopeKind.QUERY),
            params={"blinded_utxo": blindedutxo},
        )
        if not result.ok:
            return _rest_failure(result)
        return _rest_success(ack=result.value is True, nack=result.value is False)

    @router.get("/getinfo")
    def get_info(request: Request) -> JSONResponse:
        result = service.server_info(meta=_meta(request, EnvelopeKind.QUERY))
        if not result.ok or result.value is None:
            return _rest_failure(result)
        return _rest_success(version=result.value.version, uptime=result.value.uptime)

    @router.get("/health")
    def health(request: Request) -> JSONResponse:
        result = service.health(meta=_meta(request, EnvelopeKind.QUERY))
        status = result.value
        if not result.ok or status is None:
            return JSONResponse(
                {"ready": False, "service_ready": False, "substrate_ready": False},
                status_code=503,
            )
        ready = status.service_ready and status.substrate_ready
        return JSONResponse(
            {"ready": ready, **status.model_dump(mode="json")},
            status_code=200 if ready else 503,
        )

    return router


async def _respond(
    service: ArtifactAuthorityService, request: Request, *, ack: bool
) -> JSONResponse:
    """Handle the legacy ``/ack`` and ``/nack`` routes."""
    if is_form(request):
        async with request.form() as form:
            params = _rest_params(form, blinded_utxo="blindedutxo")
    else:
        try:
            body = await read_json_body(request)
        except InvalidJsonBodyError:
            body = {}
        params = _rest_params(body, blinded_utxo="blindedutxo")

    result = await run_in_threadpool(
        lambda: service.respond(
            meta=_meta(request, EnvelopeKind.COMMAND), params=params, ack=ack
        )
    )
    if not result.ok:
        return _rest_failure(result)
    return _rest_success()


def _form_call(form: FormData) -> dict[str, Any]:
    """Rebuild one JSON-RPC request object from form fields."""
    call: dict[str, Any] = {}
    for name in ("jsonrpc", "id", "method", "params"):
        value = form.get(name)
        if isinstance(value, str):
            call[name] = value
    return call


def _form_file(form: FormData, name: str) -> UploadFile | None:
    """Return one uploaded file part, or ``None`` when absent."""
    value = form.get(name)
    return value if isinstance(value, UploadFile) else None


def _rest_params(source: Any, **names: str) -> dict[str, Any]:
    """Map REST form or JSON fields onto service param names.

    Empty values are dropped so they report as missing.
    """
    if not isinstance(source, Mapping):
        return {}
    params: dict[str, Any] = {}
    for param, field in names.items():
        value = source.get(field)
        if value in (None, "") or isinstance(value, UploadFile):
            continue
        params[param] = value
    return params


def _meta(request: Request, kind: EnvelopeKind) -> EnvelopeMeta:
    return new_meta(kind=kind, source="rest", principal=client_address(request))


def _rest_success(**body: Any) -> JSONResponse:
    return JSONResponse({"success": True, **body})


def _rest_error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def _rest_failure(
    result: Envelope[Any], *, missing_file_message: str = "File is missing!"
) -> JSONResponse:
    """Render a failed envelope as a REST error response."""
    error = result.first_error
    if error is None:
        return JSONResponse({"success": False}, status_code=500)
    if error.code == errors.MISSING_FILE:
        return _rest_error(400, missing_file_message)
    mapped = _REST_ERRORS.get(error.code)
    if mapped is not None:
        return _rest_error(*mapped)
    status_code = _CATEGORY_STATUS.get(error.category)
    if status_code is not None:
        return _rest_error(status_code, error.message)
    _LOGGER.warning("REST request failed: code=%s", error.code)
    return JSONResponse({"success": False}, status_code=500)
