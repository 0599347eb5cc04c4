"""Cache com TTL sobre armazenamento durável e de sessão.

Entradas são gravadas como JSON `{"data", "timestamp", "ttl"}` com tempos
em milissegundos. Falhas de armazenamento nunca chegam ao chamador: o
cache degrada para miss.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from enum import IntEnum, StrEnum
from typing import Any, TypeVar

from medconnect_client.domain.errors import StorageError
from medconnect_client.domain.protocols.storage import KeyValueStorage
from medconnect_client.infra.http import HttpClient
from medconnect_client.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

T = TypeVar("T")


class CacheBackend(StrEnum):
    LOCAL = "local"
    """Durável (equivalente a localStorage)."""

    SESSION = "session"
    """Vive apenas enquanto a aba existir."""


class CacheTTL(IntEnum):
    """TTLs padrão em milissegundos."""

    SHORT = 5 * 60 * 1000
    MEDIUM = 15 * 60 * 1000
    LONG = 60 * 60 * 1000
    VERY_LONG = 24 * 60 * 60 * 1000


class CacheKeys:
    DOCTORS_LIST = "doctors_list"
    APPOINTMENTS = "appointments"
    APPOINTMENT_HISTORY = "appointment_history"
    NOTIFICATIONS = "notifications"
    USER_PROFILE = "user_profile"
    PRESCRIPTIONS = "prescriptions"

    @staticmethod
    def doctor_profile(doctor_id: str) -> str:
        return f"doctor_profile_{doctor_id}"


def _now_ms() -> float:
    return time.time() * 1000


class CacheManager:
    """Key/value com TTL sobre dois backends.

    Args:
        storages: Armazenamento por backend (LOCAL é obrigatório)
        clock: Relógio em milissegundos (injetável para testes)
    """

    def __init__(
        self,
        storages: Mapping[CacheBackend, KeyValueStorage],
        clock: Callable[[], float] = _now_ms,
    ) -> None:
        if CacheBackend.LOCAL not in storages:
            raise ValueError("a LOCAL storage backend is required")
        self._storages = dict(storages)
        self._clock = clock

    def _storage(self, backend: CacheBackend) -> KeyValueStorage:
        # Sem backend de sessão configurado, cai para o durável
        return self._storages.get(backend) or self._storages[CacheBackend.LOCAL]

    def set(
        self,
        key: str,
        value: Any,
        *,
        ttl: int | None = None,
        backend: CacheBackend = CacheBackend.LOCAL,
    ) -> None:
        """Grava a entrada; falhas (cota, serialização) viram no-op logado."""
        entry = {"data": value, "timestamp": self._clock(), "ttl": ttl}
        try:
            self._storage(backend).set_item(key, json.dumps(entry))
        except (StorageError, TypeError, ValueError) as e:
            logger.error(
                "Cache set failed",
                extra={"cache_key": key, "backend": str(backend), "error_type": type(e).__name__},
            )

    def get(self, key: str, backend: CacheBackend = CacheBackend.LOCAL) -> Any | None:
        """Retorna o payload ou None (ausente, corrompido ou expirado).

        Entradas expiradas são removidas como efeito colateral.
        """
        try:
            raw = self._storage(backend).get_item(key)
            if not raw:
                return None
            entry = json.loads(raw)
            ttl = entry.get("ttl")
            if ttl and self._clock() - float(entry["timestamp"]) > ttl:
                logger.debug("Cache entry expired", extra={"cache_key": key})
                self.remove(key, backend)
                return None
            return entry.get("data")
        except (StorageError, ValueError, TypeError, KeyError, AttributeError) as e:
            logger.error(
                "Cache get failed",
                extra={"cache_key": key, "backend": str(backend), "error_type": type(e).__name__},
            )
            return None

    def remove(self, key: str, backend: CacheBackend = CacheBackend.LOCAL) -> None:
        try:
            self._storage(backend).remove_item(key)
        except StorageError as e:
            logger.error(
                "Cache remove failed",
                extra={"cache_key": key, "error_type": type(e).__name__},
            )

    def clear(self, backend: CacheBackend = CacheBackend.LOCAL) -> None:
        try:
            self._storage(backend).clear()
        except StorageError as e:
            logger.error(
                "Cache clear failed",
                extra={"backend": str(backend), "error_type": type(e).__name__},
            )

    def invalidate(self, pattern: str, backend: CacheBackend = CacheBackend.LOCAL) -> int:
        """Remove toda chave que contém `pattern`; retorna quantas saíram."""
        try:
            keys = [k for k in self._storage(backend).keys() if pattern in k]
        except StorageError as e:
            logger.error(
                "Cache invalidate failed",
                extra={"pattern": pattern, "error_type": type(e).__name__},
            )
            return 0
        for key in keys:
            self.remove(key, backend)
        return len(keys)

    async def get_or_fetch(
        self,
        key: str,
        fetch_fn: Callable[[], Awaitable[T]],
        *,
        ttl: int | None = None,
        backend: CacheBackend = CacheBackend.LOCAL,
    ) -> T:
        """Valor em cache ou resultado de `fetch_fn` (chamada no máximo uma vez).

        Erros de `fetch_fn` propagam; nada é gravado nesse caso.
        """
        cached = self.get(key, backend)
        if cached is not None:
            return cached

        data = await fetch_fn()
        self.set(key, data, ttl=ttl, backend=backend)
        return data


async def cached_get(
    http: HttpClient,
    cache: CacheManager,
    path: str,
    cache_key: str,
    *,
    ttl: int = CacheTTL.MEDIUM,
    backend: CacheBackend = CacheBackend.LOCAL,
    **kwargs: Any,
) -> Any:
    """GET com diretiva de cache; retorna o corpo JSON.

    Apenas respostas 200 são gravadas.
    """
    cached = cache.get(cache_key, backend)
    if cached is not None:
        logger.debug("Cache hit", extra={"cache_key": cache_key})
        return cached

    logger.debug("Cache miss", extra={"cache_key": cache_key})
    response = await http.get(path, **kwargs)
    body = response.json()
    if response.status_code == 200:
        cache.set(cache_key, body, ttl=ttl or CacheTTL.MEDIUM, backend=backend)
    return body


async def prefetch(
    http: HttpClient,
    cache: CacheManager,
    path: str,
    cache_key: str,
    *,
    ttl: int = CacheTTL.MEDIUM,
    backend: CacheBackend = CacheBackend.LOCAL,
    **kwargs: Any,
) -> None:
    """Aquece o cache; falhas são apenas logadas."""
    try:
        await cached_get(http, cache, path, cache_key, ttl=ttl, backend=backend, **kwargs)
    except Exception as e:
        logger.warning(
            "Prefetch failed",
            extra={"cache_key": cache_key, "error_type": type(e).__name__},
        )
