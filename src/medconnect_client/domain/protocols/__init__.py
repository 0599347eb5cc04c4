"""Contratos de domínio para portas de infraestrutura."""

from medconnect_client.domain.protocols.broadcast import BroadcastChannel, BroadcastListener
from medconnect_client.domain.protocols.storage import (
    KeyValueStorage,
    StorageEvent,
    StorageListener,
)
from medconnect_client.domain.protocols.ui import Navigator, Notifier

__all__ = [
    "BroadcastChannel",
    "BroadcastListener",
    "KeyValueStorage",
    "StorageEvent",
    "StorageListener",
    "Navigator",
    "Notifier",
]
