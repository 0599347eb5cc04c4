"""Canal de broadcast via Redis pub/sub (abas em processos distintos)."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import uuid
from collections.abc import Callable
from typing import Any

from medconnect_client.domain.errors import BroadcastError
from medconnect_client.domain.protocols.broadcast import BroadcastChannel, BroadcastListener
from medconnect_client.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class RedisBroadcastChannel(BroadcastChannel):
    """Pub/sub sobre `redis.asyncio`.

    Cada mensagem carrega o `sender` do endpoint para descartar o eco
    recebido pelo próprio publicador.

    Estrutura no canal:
        {"sender": "<uuid>", "message": {...}}
    """

    def __init__(self, redis_client: Any, name: str, key_prefix: str = "medconnect:") -> None:
        self._redis = redis_client
        self._channel = f"{key_prefix}broadcast:{name}"
        self._sender_id = uuid.uuid4().hex
        self._listeners: list[BroadcastListener] = []
        self._pubsub: Any | None = None
        self._reader: asyncio.Task[None] | None = None

    async def publish(self, message: dict[str, Any]) -> None:
        envelope = json.dumps({"sender": self._sender_id, "message": message})
        try:
            await self._redis.publish(self._channel, envelope)
        except Exception as e:
            logger.error(
                "Redis broadcast publish failed",
                extra={"channel": self._channel, "error": str(e)},
            )
            raise BroadcastError(f"Redis publish failed: {e}") from e

    def subscribe(self, listener: BroadcastListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def start(self) -> None:
        if self._reader is not None:
            return
        try:
            self._pubsub = self._redis.pubsub()
            await self._pubsub.subscribe(self._channel)
        except Exception as e:
            logger.error(
                "Redis broadcast subscribe failed",
                extra={"channel": self._channel, "error": str(e)},
            )
            raise BroadcastError(f"Redis subscribe failed: {e}") from e
        self._reader = asyncio.create_task(self._read_loop())
        logger.info("Redis broadcast listening", extra={"channel": self._channel})

    async def close(self) -> None:
        self._listeners.clear()
        if self._reader is not None:
            self._reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader
            self._reader = None
        if self._pubsub is not None:
            try:
                await self._pubsub.unsubscribe(self._channel)
                await self._pubsub.aclose()
            except Exception as e:  # pragma: no cover - log best effort
                logger.warning(
                    "Redis broadcast close failed",
                    extra={"channel": self._channel, "error": str(e)},
                )
            self._pubsub = None

    async def _read_loop(self) -> None:
        assert self._pubsub is not None
        async for raw in self._pubsub.listen():
            if raw.get("type") != "message":
                continue
            self.handle_raw(raw.get("data"))

    def handle_raw(self, data: Any) -> None:
        """Decodifica um payload do canal e repassa aos listeners."""
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        try:
            envelope = json.loads(data)
        except (TypeError, json.JSONDecodeError):
            logger.warning(
                "Discarding malformed broadcast payload", extra={"channel": self._channel}
            )
            return
        if not isinstance(envelope, dict) or envelope.get("sender") == self._sender_id:
            return
        message = envelope.get("message")
        if not isinstance(message, dict):
            return
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception as exc:
                logger.error(
                    "Broadcast listener failed",
                    extra={"channel": self._channel, "error_type": type(exc).__name__},
                )
