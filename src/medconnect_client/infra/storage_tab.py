"""Visão por aba do armazenamento durável compartilhado da origem.

Como o evento `storage` do navegador, um listener nunca recebe as mudanças
feitas pela própria aba; apenas as feitas pelas outras.
"""

from __future__ import annotations

import logging

from medconnect_client.domain.protocols.storage import KeyValueStorage, StorageEvent
from medconnect_client.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class TabStorageView(KeyValueStorage):
    """Delegação para o armazenamento da origem com filtro de eventos próprios.

    Cada aba (`MedConnectClient`) recebe a sua visão; cache e Auth Store da
    mesma aba escrevem pela mesma visão e por isso não se enxergam.
    """

    def __init__(self, backing: KeyValueStorage, name: str | None = None) -> None:
        super().__init__()
        self._backing = backing
        self._own_writes = 0
        self.name = name or getattr(backing, "name", "tab")
        self._detach = backing.subscribe(self._forward)

    @property
    def backing(self) -> KeyValueStorage:
        return self._backing

    def get_item(self, key: str) -> str | None:
        return self._backing.get_item(key)

    def set_item(self, key: str, value: str) -> None:
        self._own_writes += 1
        try:
            self._backing.set_item(key, value)
        finally:
            self._own_writes -= 1

    def remove_item(self, key: str) -> None:
        self._own_writes += 1
        try:
            self._backing.remove_item(key)
        finally:
            self._own_writes -= 1

    def clear(self) -> None:
        self._own_writes += 1
        try:
            self._backing.clear()
        finally:
            self._own_writes -= 1

    def keys(self) -> list[str]:
        return self._backing.keys()

    def close(self) -> None:
        """Deixa de ouvir o armazenamento da origem."""
        self._detach()
        self._listeners.clear()

    def _forward(self, event: StorageEvent) -> None:
        # Notificação síncrona durante escrita desta aba
        if self._own_writes:
            logger.debug("Own storage event skipped", extra={"storage": self.name})
            return
        self._notify(event)
