"""Inbound HTTP plumbing shared by proxy request surfaces."""

from .errors import HttpServerError, InvalidJsonBodyError
from .server import (
    RequestLoggingMiddleware,
    client_address,
    create_app,
    is_form,
    media_type,
    read_json_body,
    run_app,
)

__all__ = [
    "HttpServerError",
    "InvalidJsonBodyError",
    "RequestLoggingMiddleware",
    "client_address",
    "create_app",
    "is_form",
    "media_type",
    "read_json_body",
    "run_app",
]
