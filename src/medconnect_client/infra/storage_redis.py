"""Armazenamento durável em Redis, compartilhado entre processos."""

from __future__ import annotations

import logging
from typing import Any

from medconnect_client.domain.errors import StorageError
from medconnect_client.domain.protocols.storage import KeyValueStorage, StorageEvent
from medconnect_client.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class RedisStorage(KeyValueStorage):
    """localStorage da origem guardado sob `<prefix><key>`.

    Eventos de mudança são entregues apenas aos listeners deste processo;
    a propagação entre processos fica a cargo do RedisBroadcastChannel.
    """

    def __init__(self, redis_client: Any, key_prefix: str = "medconnect:") -> None:
        super().__init__()
        self._redis = redis_client
        self._prefix = key_prefix

    def get_item(self, key: str) -> str | None:
        try:
            value = self._redis.get(self._prefix + key)
        except Exception as e:
            logger.error("Failed to read key from Redis", extra={"error": str(e)})
            raise StorageError(f"Redis get failed: {e}") from e
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set_item(self, key: str, value: str) -> None:
        old_value = self.get_item(key)
        try:
            self._redis.set(self._prefix + key, value)
        except Exception as e:
            logger.error("Failed to write key to Redis", extra={"error": str(e)})
            raise StorageError(f"Redis set failed: {e}") from e
        self._notify(StorageEvent(key=key, old_value=old_value, new_value=value))

    def remove_item(self, key: str) -> None:
        old_value = self.get_item(key)
        if old_value is None:
            return
        try:
            self._redis.delete(self._prefix + key)
        except Exception as e:
            logger.error("Failed to delete key from Redis", extra={"error": str(e)})
            raise StorageError(f"Redis delete failed: {e}") from e
        self._notify(StorageEvent(key=key, old_value=old_value, new_value=None))

    def clear(self) -> None:
        full_keys = [self._prefix + k for k in self.keys()]
        if not full_keys:
            return
        try:
            self._redis.delete(*full_keys)
        except Exception as e:
            logger.error("Failed to clear keys in Redis", extra={"error": str(e)})
            raise StorageError(f"Redis clear failed: {e}") from e
        self._notify(StorageEvent(key=None, old_value=None, new_value=None))

    def keys(self) -> list[str]:
        try:
            raw_keys = list(self._redis.scan_iter(match=f"{self._prefix}*"))
        except Exception as e:
            logger.error("Failed to scan keys in Redis", extra={"error": str(e)})
            raise StorageError(f"Redis scan failed: {e}") from e
        result: list[str] = []
        for raw in raw_keys:
            name = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            result.append(name[len(self._prefix):])
        return result
