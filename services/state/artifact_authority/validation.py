"""Pydantic request-validation models for Artifact Authority Service API.

Request parameters arrive as loosely shaped mappings from either surface. Each
field maps to exactly one error: an absent key is ``MISSING_<FIELD>``; a value
of the wrong type or an empty string is ``INVALID_<FIELD>``. Unknown keys are
ignored, and non-mapping params count as all fields missing.
"""

from __future__ import annotations

from typing import Any, Mapping, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationError,
)

from packages.proxy_shared.errors import ErrorDetail
from services.state.artifact_authority.errors import param_error


class _ValidationModel(BaseModel):
    """Base request model with strict field types and ignored extras."""

    model_config = ConfigDict(frozen=True, extra="ignore")


class BlindedUtxoRequest(_ValidationModel):
    """Validated request shape for operations keyed by blinded UTXO."""

    blinded_utxo: StrictStr = Field(min_length=1)


class AttachmentIdRequest(_ValidationModel):
    """Validated request shape for operations keyed by attachment ID."""

    attachment_id: StrictStr = Field(min_length=1)


class AckRequest(BlindedUtxoRequest):
    """Validated generic ack setter request."""

    ack: StrictBool


TRequest = TypeVar("TRequest", bound=BaseModel)


def decode_params(
    model: type[TRequest], params: object
) -> tuple[TRequest | None, list[ErrorDetail]]:
    """Validate raw params, returning the model or the first field error.

    Fields are checked in declaration order, so a bad key is reported before
    a bad ack value.
    """
    data: Mapping[str, Any] = params if isinstance(params, Mapping) else {}
    try:
        return model.model_validate(dict(data)), []
    except ValidationError as exc:
        first = exc.errors()[0]
        location = first.get("loc", ())
        field = str(location[0]) if location else "params"
        return None, [param_error(field, missing=first.get("type") == "missing")]
