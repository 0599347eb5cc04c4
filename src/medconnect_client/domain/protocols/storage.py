"""Contrato de armazenamento chave/valor (equivalente a Web Storage)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from medconnect_client.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class StorageEvent:
    """Mudança observada em um armazenamento.

    key=None indica clear() completo. new_value=None indica remoção.
    """

    key: str | None
    old_value: str | None
    new_value: str | None


StorageListener = Callable[[StorageEvent], None]


class KeyValueStorage(ABC):
    """Contrato mínimo de armazenamento de strings.

    Implementações devem:
    - Levantar StorageError (ou subclasse) em falhas de backend
    - Notificar listeners após cada mutação efetiva
    """

    def __init__(self) -> None:
        self._listeners: list[StorageListener] = []

    @abstractmethod
    def get_item(self, key: str) -> str | None: ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None: ...

    @abstractmethod
    def remove_item(self, key: str) -> None: ...

    @abstractmethod
    def clear(self) -> None: ...

    @abstractmethod
    def keys(self) -> list[str]: ...

    def subscribe(self, listener: StorageListener) -> Callable[[], None]:
        """Registra listener de mudanças; retorna função de remoção."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: StorageEvent) -> None:
        """Entrega o evento a todos os listeners isolando falhas."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:
                logger.error(
                    "Storage listener failed",
                    extra={"key": event.key, "error_type": type(exc).__name__},
                )
