"""FastAPI application factory, uvicorn runner and request helpers."""

from __future__ import annotations

import json
from time import perf_counter
from typing import Any, Awaitable, Callable

import uvicorn
from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from packages.proxy_shared.logging import fields, get_logger, log_context

from .errors import InvalidJsonBodyError

_LOGGER = get_logger(__name__)

_FORM_MEDIA_TYPES = frozenset(
    {"multipart/form-data", "application/x-www-form-urlencoded"}
)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Write one access log record per request, after the response is ready."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started = perf_counter()
        request_fields = {
            fields.EVENT: fields.HTTP_REQUEST_EVENT,
            fields.HTTP_METHOD: request.method,
            fields.HTTP_PATH: request.url.path,
            fields.CLIENT_ADDRESS: client_address(request),
        }
        with log_context(request_fields):
            try:
                response = await call_next(request)
            except Exception:
                _LOGGER.exception("HTTP request failed")
                raise
            elapsed = round((perf_counter() - started) * 1000.0, 3)
            with log_context(
                {fields.HTTP_STATUS: response.status_code, fields.DURATION_MS: elapsed}
            ):
                _LOGGER.info("HTTP request")
        return response


def create_app(*, title: str = "rgb-proxy", version: str = "0.0.0") -> FastAPI:
    """Return an app with access logging and no interactive docs."""
    app = FastAPI(title=title, version=version, docs_url=None, redoc_url=None)
    app.add_middleware(RequestLoggingMiddleware)
    return app


def run_app(
    app: FastAPI,
    *,
    host: str = "127.0.0.1",
    port: int = 3000,
    log_level: str = "info",
) -> None:
    """Serve ``app`` until interrupted."""
    uvicorn.run(app, host=host, port=port, log_level=log_level)


def client_address(request: Request, default: str = "anonymous") -> str:
    """Return the peer host, or ``default`` when the transport hides it."""
    return request.client.host if request.client is not None else default


def media_type(request: Request) -> str:
    """Return the lower-cased content type without parameters."""
    content_type = request.headers.get("content-type") or ""
    return content_type.split(";", 1)[0].strip().lower()


def is_form(request: Request) -> bool:
    """Return whether Starlette's form parser can read the body."""
    return media_type(request) in _FORM_MEDIA_TYPES


async def read_json_body(request: Request) -> Any:
    """Decode the body as JSON, raising ``InvalidJsonBodyError`` otherwise."""
    body = await request.body()
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidJsonBodyError() from exc
