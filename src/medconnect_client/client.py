"""Container da aplicação: uma instância de cada componente por aba.

Abas da mesma origem compartilham o armazenamento durável e o canal de
broadcast; cada `MedConnectClient` é uma aba.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import datetime
from typing import Any
from urllib.parse import urlparse

import httpx
import redis
import redis.asyncio as redis_async
import socketio

from medconnect_client.adapters.backend.endpoints import BackendApi
from medconnect_client.application.auth_store import AuthStore
from medconnect_client.application.cache import (
    CacheBackend,
    CacheManager,
    CacheTTL,
    cached_get,
    prefetch,
)
from medconnect_client.application.chat_history import ChatHistoryLoader, HistoryPager
from medconnect_client.application.recovery import AuthFailureInterceptor, UnauthorizedGuard
from medconnect_client.application.socket_manager import SocketManager
from medconnect_client.config.settings import Settings, get_settings
from medconnect_client.domain.chat import ChatSurface, ConversationRef
from medconnect_client.domain.protocols.broadcast import BroadcastChannel
from medconnect_client.domain.protocols.storage import KeyValueStorage
from medconnect_client.domain.protocols.ui import Navigator, Notifier
from medconnect_client.infra.broadcast_factory import create_broadcast_channel
from medconnect_client.infra.broadcast_memory import InMemoryBroadcastHub
from medconnect_client.infra.http import HttpClient, create_http_client
from medconnect_client.infra.storage_factory import create_storage
from medconnect_client.infra.storage_memory import InMemoryStorage
from medconnect_client.infra.storage_tab import TabStorageView
from medconnect_client.infra.ui import InMemoryNavigator, LoggingNotifier
from medconnect_client.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class MedConnectClient:
    """Componentes ligados de uma aba, com boot e teardown explícitos."""

    def __init__(
        self,
        settings: Settings,
        http: HttpClient,
        api: BackendApi,
        cache: CacheManager,
        auth: AuthStore,
        socket: SocketManager,
        chat_history: ChatHistoryLoader,
        interceptor: AuthFailureInterceptor,
        *,
        storage: TabStorageView,
        session_storage: KeyValueStorage,
        broadcast: BroadcastChannel | None = None,
        owned_resources: list[Any] | None = None,
    ) -> None:
        self.settings = settings
        self.http = http
        self.api = api
        self.cache = cache
        self.auth = auth
        self.socket = socket
        self.chat_history = chat_history
        self.interceptor = interceptor
        self.storage = storage
        self.session_storage = session_storage
        self.broadcast = broadcast
        self._owned = list(owned_resources or [])
        self._started = False

    async def start(self) -> None:
        """Reidrata a sessão, marca pronto e passa a ouvir as outras abas."""
        if self._started:
            return
        await self.auth.start()
        self._started = True
        logger.info(
            "Client started",
            extra={"tab_id": self.auth.tab_id, "authenticated": self.auth.user is not None},
        )

    async def aclose(self) -> None:
        """Teardown: listeners, visão do armazenamento, socket, broadcast e HTTP."""
        self.auth.teardown()
        self.storage.close()
        await self.socket.teardown()
        if self.broadcast is not None:
            await self.broadcast.close()
        await self.http.close()
        for resource in self._owned:
            if isinstance(resource, redis_async.Redis):
                await resource.aclose()
            else:
                resource.close()
        self._owned.clear()
        self._started = False
        logger.info("Client closed", extra={"tab_id": self.auth.tab_id})

    async def __aenter__(self) -> MedConnectClient:
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def cached_get(
        self,
        path: str,
        cache_key: str,
        *,
        ttl: int = CacheTTL.MEDIUM,
        backend: CacheBackend = CacheBackend.LOCAL,
        **kwargs: Any,
    ) -> Any:
        return await cached_get(
            self.http, self.cache, path, cache_key, ttl=ttl, backend=backend, **kwargs
        )

    async def prefetch(
        self,
        path: str,
        cache_key: str,
        *,
        ttl: int = CacheTTL.MEDIUM,
        backend: CacheBackend = CacheBackend.LOCAL,
    ) -> None:
        await prefetch(self.http, self.cache, path, cache_key, ttl=ttl, backend=backend)

    def history_pager(
        self, surface: ChatSurface, identifier: str, limit: int | None = None
    ) -> HistoryPager:
        ref = ConversationRef(
            kind=surface,
            identifier=identifier,
            limit=limit or self.settings.chat_history_page_size,
        )
        return HistoryPager(self.chat_history, ref)


def _origin_name(base_url: str) -> str:
    netloc = urlparse(base_url).netloc or "default"
    return re.sub(r"[^A-Za-z0-9_.-]", "_", netloc)


def create_client(
    settings: Settings | None = None,
    *,
    durable_storage: KeyValueStorage | None = None,
    session_storage: KeyValueStorage | None = None,
    broadcast: BroadcastChannel | None = None,
    hub: InMemoryBroadcastHub | None = None,
    socket_client: socketio.AsyncClient | None = None,
    notifier: Notifier | None = None,
    navigator: Navigator | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    guard_clock: Callable[[], float] | None = None,
    cache_clock: Callable[[], float] | None = None,
    expiry_clock: Callable[[], datetime] | None = None,
    tab_id: str | None = None,
) -> MedConnectClient:
    """Monta uma aba.

    Para simular várias abas no mesmo processo, passe o mesmo
    `durable_storage` e o mesmo `hub` (ou canais do mesmo hub).

    Raises:
        ValueError: configuração inválida
    """
    settings = settings or get_settings()
    errors = settings.validate_all()
    if errors:
        raise ValueError("Invalid configuration: " + "; ".join(errors))

    owned: list[Any] = []
    sync_redis: redis.Redis | None = None
    async_redis: redis_async.Redis | None = None

    if durable_storage is None:
        if settings.durable_storage_backend.lower() == "redis":
            sync_redis = redis.Redis.from_url(settings.redis_url)
            owned.append(sync_redis)
        durable_storage = create_storage(
            settings.durable_storage_backend,
            redis_client=sync_redis,
            directory=settings.storage_dir,
            origin=_origin_name(settings.api_base_url),
            key_prefix=settings.redis_key_prefix,
            quota_bytes=settings.storage_quota_bytes,
        )
    if session_storage is None:
        session_storage = InMemoryStorage(quota_bytes=settings.storage_quota_bytes, name="session")

    if broadcast is None:
        if settings.broadcast_backend.lower() == "redis":
            async_redis = redis_async.from_url(settings.redis_url)
            owned.append(async_redis)
        broadcast = create_broadcast_channel(
            settings.broadcast_backend,
            settings.broadcast_channel,
            hub=hub,
            redis_client=async_redis,
            key_prefix=settings.redis_key_prefix,
        )

    notifier = notifier or LoggingNotifier()
    navigator = navigator or InMemoryNavigator()

    http = create_http_client(settings, transport=transport)
    guard = UnauthorizedGuard(settings.unauthorized_cooldown_seconds, clock=guard_clock)
    interceptor = AuthFailureInterceptor(notifier, navigator, guard, settings.login_path)
    http.add_response_hook(interceptor)

    api = BackendApi(http)
    tab_storage = TabStorageView(durable_storage)
    storages = {CacheBackend.LOCAL: tab_storage, CacheBackend.SESSION: session_storage}
    cache = CacheManager(storages, clock=cache_clock) if cache_clock else CacheManager(storages)

    socket = SocketManager(
        settings.resolved_socket_url,
        client=socket_client,
        transports=settings.socket_transports,
        cookie_provider=http.cookie_header,
    )

    auth = AuthStore(
        api.auth,
        tab_storage,
        navigator,
        broadcast=broadcast,
        disconnect_socket=socket.disconnect,
        storage_key=settings.auth_storage_key,
        signal_key=settings.logout_signal_key,
        login_path=settings.login_path,
        tab_id=tab_id,
        clock=expiry_clock,
    )
    interceptor.bind_session_handler(auth.handle_session_expiry)

    chat_history = ChatHistoryLoader(api.chat, default_limit=settings.chat_history_page_size)

    return MedConnectClient(
        settings,
        http,
        api,
        cache,
        auth,
        socket,
        chat_history,
        interceptor,
        storage=tab_storage,
        session_storage=session_storage,
        broadcast=broadcast,
        owned_resources=owned,
    )
