"""Factory para KeyValueStorage: criação backend-agnóstica."""

from __future__ import annotations

import logging
from typing import Any

from medconnect_client.domain.protocols.storage import KeyValueStorage
from medconnect_client.infra.storage_file import FileStorage
from medconnect_client.infra.storage_memory import InMemoryStorage
from medconnect_client.infra.storage_redis import RedisStorage
from medconnect_client.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


def create_storage(
    backend: str,
    *,
    redis_client: Any | None = None,
    directory: str | None = None,
    origin: str = "default",
    key_prefix: str = "medconnect:",
    quota_bytes: int | None = None,
) -> KeyValueStorage:
    """Factory para KeyValueStorage.

    Args:
        backend: "memory", "file" ou "redis"
        redis_client: Cliente Redis (obrigatório se backend="redis")
        directory: Diretório base (obrigatório se backend="file")

    Raises:
        ValueError: Se backend inválido ou dependência não fornecida
    """
    backend = backend.lower()

    if backend == "memory":
        logger.debug("Using in-memory storage")
        return InMemoryStorage(quota_bytes=quota_bytes)

    if backend == "file":
        if not directory:
            msg = "directory required for file backend"
            raise ValueError(msg)
        logger.info("Using file storage", extra={"origin": origin})
        return FileStorage(directory, origin=origin)

    if backend == "redis":
        if redis_client is None:
            msg = "redis_client required for redis backend"
            raise ValueError(msg)
        logger.info("Using Redis storage")
        return RedisStorage(redis_client, key_prefix=key_prefix)

    msg = f"Unknown storage backend: {backend}"
    raise ValueError(msg)
