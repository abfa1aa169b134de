"""Helpers that wrap payloads in the response envelope."""

from typing import Any

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from timberledger.models.response import ApiResponse


def envelope_body(envelope: ApiResponse, **extra: Any) -> dict:
    """Serialize an envelope, dropping ``data`` when there is none."""
    body = jsonable_encoder(envelope)
    if envelope.data is None:
        body.pop("data", None)
    body.update(jsonable_encoder(extra))
    return body


def respond(
    message: str,
    data: Any = None,
    status_code: int = status.HTTP_200_OK,
    **extra: Any,
) -> JSONResponse:
    """Build a JSONResponse carrying the standard envelope.

    Args:
        message: Human-readable outcome
        data: Optional payload (models, lists, dicts)
        status_code: HTTP status; also decides the ``success`` flag
        extra: Additional top-level keys (error detail in development)
    """
    envelope = ApiResponse.for_status(status_code, message, data)
    return JSONResponse(status_code=status_code, content=envelope_body(envelope, **extra))
