"""Armazenamento em memória (sessionStorage ou localStorage compartilhado em processo)."""

from __future__ import annotations

import logging

from medconnect_client.domain.errors import StorageQuotaExceededError
from medconnect_client.domain.protocols.storage import KeyValueStorage, StorageEvent
from medconnect_client.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class InMemoryStorage(KeyValueStorage):
    """Dicionário de strings com cota opcional em bytes.

    Uma mesma instância pode ser compartilhada entre várias abas do processo
    para simular o localStorage da origem.
    """

    def __init__(self, quota_bytes: int | None = None, name: str = "memory") -> None:
        super().__init__()
        self._items: dict[str, str] = {}
        self._quota_bytes = quota_bytes
        self.name = name

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        old_value = self._items.get(key)
        if self._quota_bytes is not None:
            projected = self._used_bytes() - _entry_size(key, old_value) + _entry_size(key, value)
            if projected > self._quota_bytes:
                logger.warning(
                    "Storage quota exceeded",
                    extra={"storage": self.name, "quota_bytes": self._quota_bytes},
                )
                raise StorageQuotaExceededError(f"Quota of {self._quota_bytes} bytes exceeded")
        self._items[key] = value
        self._notify(StorageEvent(key=key, old_value=old_value, new_value=value))

    def remove_item(self, key: str) -> None:
        if key not in self._items:
            return
        old_value = self._items.pop(key)
        self._notify(StorageEvent(key=key, old_value=old_value, new_value=None))

    def clear(self) -> None:
        if not self._items:
            return
        self._items.clear()
        self._notify(StorageEvent(key=None, old_value=None, new_value=None))

    def keys(self) -> list[str]:
        return list(self._items)

    def _used_bytes(self) -> int:
        return sum(_entry_size(k, v) for k, v in self._items.items())


def _entry_size(key: str, value: str | None) -> int:
    if value is None:
        return 0
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))
