"""Hierarquia de erros do cliente.

Propagação (ver DESIGN.md):
- Credencial/transporte: propagam ao chamador imediato.
- Sessão expirada: tratada globalmente pelo interceptor.
- Cache/armazenamento: engolidos pelo CacheManager (viram miss).
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ClientError(Exception):
    """Base de todos os erros do cliente."""


class HttpError(ClientError):
    """Erro de requisição HTTP sem expor informações sensíveis."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        is_retryable: bool = False,
        payload: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.is_retryable = is_retryable
        self.payload = payload

    @property
    def server_message(self) -> str | None:
        """Mensagem do envelope de erro do backend, se houver."""
        if isinstance(self.payload, dict):
            message = self.payload.get("message")
            if isinstance(message, str) and message:
                return message
        return None


class SessionExpiredError(HttpError):
    """Resposta 401: a recuperação global já foi disparada pelo interceptor."""


class BackendError(ClientError):
    """Envelope com success=false."""


class MalformedResponseError(BackendError):
    """Corpo que não é um envelope `{success, data, message}` válido."""


class AuthErrorCategory(StrEnum):
    """Categorias de falha de login que a UI precisa distinguir."""

    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    UNKNOWN = "UNKNOWN"


class AuthError(ClientError):
    """Falha de autenticação categorizada (nunca um erro de transporte cru)."""

    def __init__(self, category: AuthErrorCategory, message: str) -> None:
        super().__init__(message)
        self.category = category


class ChatHistoryError(ClientError):
    """Falha ao carregar uma página de histórico de chat."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StorageError(ClientError):
    """Falha no backend de armazenamento local."""


class StorageQuotaExceededError(StorageError):
    """Cota do armazenamento excedida (equivalente a QuotaExceededError)."""


class BroadcastError(ClientError):
    """Falha ao publicar ou escutar no canal entre abas."""
