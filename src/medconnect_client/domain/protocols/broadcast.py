"""Contrato do canal de broadcast entre abas (mesma origem)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

BroadcastListener = Callable[[dict[str, Any]], None]


class BroadcastChannel(ABC):
    """Pub/sub best-effort entre instâncias que compartilham a sessão.

    Como o primitivo do navegador, nunca entrega uma mensagem de volta à
    instância que a publicou.
    """

    @abstractmethod
    async def publish(self, message: dict[str, Any]) -> None:
        """Publica mensagem; levanta BroadcastError em falha."""

    @abstractmethod
    def subscribe(self, listener: BroadcastListener) -> Callable[[], None]:
        """Registra listener; retorna função de remoção."""

    async def start(self) -> None:
        """Inicia recepção (no-op para backends síncronos)."""
        return None

    @abstractmethod
    async def close(self) -> None:
        """Libera recursos e remove listeners."""
