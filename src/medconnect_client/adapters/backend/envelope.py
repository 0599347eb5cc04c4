"""Envelope `{success, data, message}` usado por todos os endpoints."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from medconnect_client.domain.errors import BackendError, MalformedResponseError


class ApiEnvelope(BaseModel):
    """Resposta padrão do backend."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    success: bool = False
    data: Any = None
    message: str | None = None
    status_code: int | None = Field(default=None, alias="statusCode")


def parse_envelope(response: httpx.Response) -> ApiEnvelope:
    """Valida o corpo JSON como envelope; levanta MalformedResponseError se inválido."""
    try:
        return ApiEnvelope.model_validate(response.json())
    except (ValueError, ValidationError) as e:
        raise MalformedResponseError("Malformed response from server") from e


def unwrap(response: httpx.Response, default_message: str) -> Any:
    """Retorna `data` ou levanta BackendError com a mensagem do servidor."""
    envelope = parse_envelope(response)
    if not envelope.success:
        raise BackendError(envelope.message or default_message)
    return envelope.data
