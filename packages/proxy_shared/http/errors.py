"""Failures raised by the inbound request helpers."""

from __future__ import annotations


class HttpServerError(Exception):
    """A request could not be read in the shape a route expects."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidJsonBodyError(HttpServerError):
    """The body is not decodable JSON."""

    def __init__(self, message: str = "Body is not valid JSON") -> None:
        super().__init__(message)
