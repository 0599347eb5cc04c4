"""Factory para BroadcastChannel."""

from __future__ import annotations

import logging
from typing import Any

from medconnect_client.domain.protocols.broadcast import BroadcastChannel
from medconnect_client.infra.broadcast_memory import InMemoryBroadcastHub
from medconnect_client.infra.broadcast_redis import RedisBroadcastChannel
from medconnect_client.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


def create_broadcast_channel(
    backend: str,
    name: str,
    *,
    hub: InMemoryBroadcastHub | None = None,
    redis_client: Any | None = None,
    key_prefix: str = "medconnect:",
) -> BroadcastChannel | None:
    """Cria o canal entre abas.

    Args:
        backend: "none", "memory" ou "redis"
        hub: Hub compartilhado (backend="memory"); criado se omitido
        redis_client: Cliente `redis.asyncio` (obrigatório se backend="redis")

    Returns:
        Canal configurado, ou None (usa fallback via storage)
    """
    backend = backend.lower()

    if backend == "none":
        logger.info("Broadcast disabled; using storage signal fallback")
        return None

    if backend == "memory":
        return (hub or InMemoryBroadcastHub()).channel(name)

    if backend == "redis":
        if redis_client is None:
            msg = "redis_client required for redis backend"
            raise ValueError(msg)
        logger.info("Using Redis broadcast channel", extra={"channel": name})
        return RedisBroadcastChannel(redis_client, name, key_prefix=key_prefix)

    msg = f"Unknown broadcast backend: {backend}"
    raise ValueError(msg)
