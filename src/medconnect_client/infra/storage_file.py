"""Armazenamento durável em arquivo JSON (sobrevive a reinícios do processo).

Cada operação relê o arquivo, então escritas de outros processos da mesma
origem são visíveis. Escrita atômica via arquivo temporário + os.replace.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from medconnect_client.domain.errors import StorageError
from medconnect_client.domain.protocols.storage import KeyValueStorage, StorageEvent
from medconnect_client.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class FileStorage(KeyValueStorage):
    """localStorage persistido em `<directory>/<origin>.json`."""

    def __init__(self, directory: str | Path, origin: str = "default") -> None:
        super().__init__()
        self._path = Path(directory) / f"{origin}.json"

    @property
    def path(self) -> Path:
        return self._path

    def get_item(self, key: str) -> str | None:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read()
        old_value = items.get(key)
        items[key] = value
        self._write(items)
        self._notify(StorageEvent(key=key, old_value=old_value, new_value=value))

    def remove_item(self, key: str) -> None:
        items = self._read()
        if key not in items:
            return
        old_value = items.pop(key)
        self._write(items)
        self._notify(StorageEvent(key=key, old_value=old_value, new_value=None))

    def clear(self) -> None:
        if not self._read():
            return
        self._write({})
        self._notify(StorageEvent(key=None, old_value=None, new_value=None))

    def keys(self) -> list[str]:
        return list(self._read())

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            raw = self._path.read_text(encoding="utf-8")
            data = json.loads(raw) if raw.strip() else {}
        except (OSError, json.JSONDecodeError) as e:
            logger.error(
                "Failed to read storage file",
                extra={"path": str(self._path), "error_type": type(e).__name__},
            )
            raise StorageError(f"Storage read failed: {type(e).__name__}") from e
        if not isinstance(data, dict):
            raise StorageError("Storage file does not contain an object")
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, items: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(items, fh)
            os.replace(tmp_name, self._path)
        except OSError as e:
            logger.error(
                "Failed to write storage file",
                extra={"path": str(self._path), "error_type": type(e).__name__},
            )
            raise StorageError(f"Storage write failed: {type(e).__name__}") from e
