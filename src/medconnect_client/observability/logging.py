"""Logging JSON do cliente (correlation_id, service e redação de campos)."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from pythonjsonlogger.json import JsonFormatter

from medconnect_client.observability.context import get_correlation_id

# Atributos de `extra` que nunca saem em claro
REDACTED_FIELDS = frozenset(
    {"password", "token", "access_token", "refresh_token", "cookie", "email", "text"}
)
REDACTED = "[redacted]"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(correlation_id)s %(service)s"


class CorrelationIdFilter(logging.Filter):
    """Completa o record com correlation_id/service e redige campos sensíveis."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id()
        record.service = self._service_name
        for name in REDACTED_FIELDS.intersection(record.__dict__):
            setattr(record, name, REDACTED)
        return True


def configure_logging(level: str, service_name: str, stream: TextIO | None = None) -> None:
    """Instala um único handler JSON no root logger."""
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        JsonFormatter(LOG_FORMAT, rename_fields={"levelname": "level", "name": "logger"})
    )
    handler.addFilter(CorrelationIdFilter(service_name))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def mask_identifier(value: str | None, keep: int = 8) -> str | None:
    """Trunca identificadores para log (sem expor o valor completo)."""
    if not value:
        return None
    return value[:keep] + "..." if len(value) > keep else value
