"""Canal de broadcast em memória (abas no mesmo processo)."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from medconnect_client.domain.errors import BroadcastError
from medconnect_client.domain.protocols.broadcast import BroadcastChannel, BroadcastListener
from medconnect_client.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class InMemoryBroadcastHub:
    """Registro de canais por nome; representa uma origem."""

    def __init__(self) -> None:
        self._channels: dict[str, list[InMemoryBroadcastChannel]] = {}

    def channel(self, name: str) -> InMemoryBroadcastChannel:
        """Abre um novo endpoint do canal `name` (um por aba)."""
        endpoint = InMemoryBroadcastChannel(self, name)
        self._channels.setdefault(name, []).append(endpoint)
        return endpoint

    def _peers(self, name: str, sender: InMemoryBroadcastChannel) -> list[InMemoryBroadcastChannel]:
        return [c for c in self._channels.get(name, []) if c is not sender]

    def _detach(self, endpoint: InMemoryBroadcastChannel) -> None:
        members = self._channels.get(endpoint.name, [])
        if endpoint in members:
            members.remove(endpoint)


class InMemoryBroadcastChannel(BroadcastChannel):
    """Endpoint do hub; entrega síncrona dentro de publish()."""

    def __init__(self, hub: InMemoryBroadcastHub, name: str) -> None:
        self._hub = hub
        self.name = name
        self._listeners: list[BroadcastListener] = []
        self._closed = False

    async def publish(self, message: dict[str, Any]) -> None:
        if self._closed:
            raise BroadcastError("Channel is closed")
        peers = self._hub._peers(self.name, self)
        logger.debug(
            "Broadcast published (in-memory)",
            extra={"channel": self.name, "peers": len(peers)},
        )
        for peer in peers:
            peer._deliver(message)

    def subscribe(self, listener: BroadcastListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def close(self) -> None:
        self._closed = True
        self._listeners.clear()
        self._hub._detach(self)

    def _deliver(self, message: dict[str, Any]) -> None:
        for listener in list(self._listeners):
            try:
                listener(dict(message))
            except Exception as exc:
                logger.error(
                    "Broadcast listener failed",
                    extra={"channel": self.name, "error_type": type(exc).__name__},
                )
