"""Camada de infraestrutura: adapters para armazenamento, broadcast e HTTP.

- Storage: InMemoryStorage, FileStorage, RedisStorage, TabStorageView, create_storage
- Broadcast: InMemoryBroadcastHub, RedisBroadcastChannel, create_broadcast_channel
- HTTP: HttpClient
- UI: LoggingNotifier, InMemoryNavigator

Infraestrutura não decide regra de negócio.
"""

from medconnect_client.infra.broadcast_factory import create_broadcast_channel
from medconnect_client.infra.broadcast_memory import InMemoryBroadcastChannel, InMemoryBroadcastHub
from medconnect_client.infra.broadcast_redis import RedisBroadcastChannel
from medconnect_client.infra.http import HttpClient, HttpClientConfig, create_http_client
from medconnect_client.infra.storage_factory import create_storage
from medconnect_client.infra.storage_file import FileStorage
from medconnect_client.infra.storage_memory import InMemoryStorage
from medconnect_client.infra.storage_redis import RedisStorage
from medconnect_client.infra.storage_tab import TabStorageView
from medconnect_client.infra.ui import InMemoryNavigator, LoggingNotifier

__all__ = [
    # Storage
    "InMemoryStorage",
    "FileStorage",
    "RedisStorage",
    "TabStorageView",
    "create_storage",
    # Broadcast
    "InMemoryBroadcastHub",
    "InMemoryBroadcastChannel",
    "RedisBroadcastChannel",
    "create_broadcast_channel",
    # HTTP
    "HttpClient",
    "HttpClientConfig",
    "create_http_client",
    # UI
    "LoggingNotifier",
    "InMemoryNavigator",
]
