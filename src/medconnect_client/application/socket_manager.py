"""Conexão Socket.IO única compartilhada por todas as superfícies de chat.

Um único listener de transporte para "message" faz fan-out para os
callbacks registrados, em ordem de registro, isolando falhas.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

import socketio

from medconnect_client.adapters.backend.normalizer import normalize_chat_message
from medconnect_client.domain.chat import ChatMessage, DmMessageData, RoomMessageData
from medconnect_client.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

MessageHandler = Callable[[ChatMessage], Any]
"""Callback síncrono ou assíncrono."""

MESSAGE_EVENT = "message"


class SocketManager:
    """Dono exclusivo da conexão em tempo real.

    Args:
        url: URL do servidor Socket.IO
        client: Cliente Socket.IO (injetável para testes)
        transports: Transportes permitidos
        cookie_provider: Retorna o header Cookie da sessão para o handshake
    """

    def __init__(
        self,
        url: str,
        client: socketio.AsyncClient | None = None,
        transports: list[str] | None = None,
        cookie_provider: Callable[[], str | None] | None = None,
    ) -> None:
        self._url = url
        self._sio = client or socketio.AsyncClient(reconnection=True)
        self._transports = transports
        self._cookie_provider = cookie_provider
        self._handlers: list[tuple[object, MessageHandler]] = []
        self._listener_attached = False
        self._connect_lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return bool(self._sio.connected)

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    async def connect(self) -> None:
        """Conecta se ainda não conectado (idempotente)."""
        self._ensure_listener()
        async with self._connect_lock:
            if self.connected:
                return
            headers: dict[str, str] = {}
            cookie = self._cookie_provider() if self._cookie_provider else None
            if cookie:
                headers["Cookie"] = cookie
            logger.info("Connecting socket", extra={"url": self._url})
            await self._sio.connect(self._url, headers=headers, transports=self._transports)

    async def disconnect(self) -> None:
        """Desconecta se conectado (idempotente)."""
        if not self.connected:
            return
        logger.info("Disconnecting socket")
        await self._sio.disconnect()

    def subscribe(self, handler: MessageHandler) -> Callable[[], None]:
        """Registra callback; a função retornada remove exatamente este registro.

        Remover o último callback não desconecta o transporte.
        """
        self._ensure_listener()
        token = object()
        self._handlers.append((token, handler))

        def unsubscribe() -> None:
            self._handlers = [entry for entry in self._handlers if entry[0] is not token]

        return unsubscribe

    async def dispatch(self, payload: Any) -> None:
        """Normaliza o evento recebido e entrega a todos os callbacks."""
        try:
            message = normalize_chat_message(payload)
        except ValueError as e:
            logger.warning("Dropping malformed socket message", extra={"error": str(e)})
            return

        for _, handler in list(self._handlers):
            try:
                result = handler(message)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "Chat socket handler failed",
                    extra={
                        "handler": getattr(handler, "__name__", repr(handler)),
                        "error_type": type(e).__name__,
                    },
                )

    async def join_room(self, room_id: str) -> None:
        """Entra na sala de mensagem direta."""
        await self._emit("joinDmRoom", room_id)

    async def join_community_room(self, room_id: str, user_id: str, username: str) -> None:
        data = {"roomId": room_id, "userId": user_id, "username": username}
        await self._emit("joinRoom", {"event": "joinRoom", "data": data})

    async def send_message(self, message: DmMessageData) -> None:
        await self._emit("dmMessage", {"event": "dmMessage", "data": message.to_wire()})

    async def send_message_to_room(self, message: RoomMessageData) -> None:
        await self._emit("roomMessage", {"event": "roomMessage", "data": message.to_wire()})

    async def teardown(self) -> None:
        """Limpa o registro de callbacks e encerra a conexão."""
        self._handlers.clear()
        await self.disconnect()

    def _ensure_listener(self) -> None:
        if self._listener_attached:
            return
        self._sio.on(MESSAGE_EVENT, self.dispatch)
        self._listener_attached = True

    async def _emit(self, event: str, data: Any) -> None:
        # Sem ack: a ordem é a FIFO do próprio transporte
        await self.connect()
        logger.debug("Socket emit", extra={"event": event})
        await self._sio.emit(event, data)
